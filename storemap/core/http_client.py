"""
Global HTTP Client with connection pooling.

Reuses TCP connections to the inventory API and the geocoder. Every request
inherits an explicit timeout so a stalled upstream cannot hang a sync.
"""
import httpx
import logging
from typing import Optional

from ..config import settings

logger = logging.getLogger(__name__)

# Global HTTP client (singleton)
_http_client: Optional[httpx.AsyncClient] = None


def build_timeout() -> httpx.Timeout:
    """Per-request timeout used for every outbound call"""
    return httpx.Timeout(
        settings.http_timeout_seconds,
        connect=settings.http_connect_timeout_seconds,
    )


async def get_http_client() -> httpx.AsyncClient:
    """
    Get global HTTP client with connection pooling.

    Should be closed on application shutdown via close_http_client().

    Returns:
        Shared httpx.AsyncClient instance
    """
    global _http_client

    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=build_timeout(),
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0
            ),
            http2=True,
            headers={"User-Agent": f"{settings.app_name}/{settings.app_version}"},
        )
        logger.info("HTTP client created with connection pooling")

    return _http_client


async def close_http_client():
    """
    Close global HTTP client on shutdown.
    """
    global _http_client

    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed")
