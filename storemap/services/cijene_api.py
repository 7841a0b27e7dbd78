"""
cijene.dev inventory API - chain and store listings.

Authorization is a bearer token (CIJENE_API_TOKEN). Calls are spaced by a
shared token bucket so a full fetch never bursts the upstream.
"""
import logging
from typing import Any, Optional

import httpx

from ..config import settings
from ..core.exceptions import ConfigurationError, UpstreamError
from ..core.http_client import get_http_client
from ..core.rate_limiter import TokenBucket, get_cijene_rate_limiter
from ..models.results import RemoteListing
from ..models.store import Store

logger = logging.getLogger(__name__)

ALL_CHAINS = "all"


class CijeneClient:
    """Remote source of truth for stores"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        rate_limiter: Optional[TokenBucket] = None,
    ):
        self._client = client
        self.base_url = (base_url or settings.cijene_api_url).rstrip("/")
        self.api_token = api_token if api_token is not None else settings.cijene_api_token
        self._rate_limiter = rate_limiter

    def _get_headers(self) -> dict:
        if not self.api_token:
            raise ConfigurationError("CIJENE_API_TOKEN is not configured")
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Accept": "application/json",
        }

    async def _get_json(self, path: str) -> dict[str, Any]:
        headers = self._get_headers()
        client = self._client or await get_http_client()
        limiter = self._rate_limiter or get_cijene_rate_limiter()
        url = f"{self.base_url}{path}"

        await limiter.acquire()
        try:
            response = await client.get(url, headers=headers)
        except httpx.TimeoutException:
            logger.warning(f"[CIJENE] Timeout calling {path}")
            raise UpstreamError(f"Request timeout: {path}")
        except httpx.RequestError as e:
            logger.error(f"[CIJENE] Network error calling {path}: {e}")
            raise UpstreamError(f"Network error: {e}")

        if response.status_code != 200:
            detail = _error_detail(response)
            logger.warning(f"[CIJENE] HTTP {response.status_code} for {path}: {detail}")
            raise UpstreamError(f"HTTP {response.status_code}: {detail}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {path}: {e}")
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected payload from {path}")
        return data

    async def list_chains(self) -> list[str]:
        """
        All chain codes known to the inventory API.

        Raises:
            ConfigurationError: If the API token is missing
            UpstreamError: If the call fails
        """
        data = await self._get_json("/v1/chains/")
        chains = data.get("chains") or []
        return [str(chain) for chain in chains]

    async def list_stores_for_chain(self, chain_code: str) -> list[Store]:
        """
        All stores of one chain.

        Raises:
            ConfigurationError: If the API token is missing
            UpstreamError: If the call fails or the payload is malformed
        """
        data = await self._get_json(f"/v1/{chain_code}/stores/")
        try:
            return [Store.from_api(item, chain_code=chain_code) for item in data.get("stores") or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(f"Malformed store listing for {chain_code}: {e}")

    async def fetch_listing(self, chain: str = ALL_CHAINS) -> RemoteListing:
        """
        Stores for one chain or for every chain.

        For "all", a chain whose listing fails is logged, reported in
        failed_chains and contributes no stores. The chain list itself, and a
        single requested chain, must succeed.
        """
        if chain != ALL_CHAINS:
            return RemoteListing(stores=await self.list_stores_for_chain(chain))

        chains = await self.list_chains()
        listing = RemoteListing()
        for chain_code in chains:
            try:
                stores = await self.list_stores_for_chain(chain_code)
            except UpstreamError as e:
                logger.warning(f"[CIJENE] Skipping chain {chain_code}: {e}")
                listing.failed_chains.append(chain_code)
                continue
            listing.stores.extend(stores)

        logger.info(
            f"[CIJENE] Fetched {len(listing.stores)} stores from {len(chains)} chains"
            f"{f' ({len(listing.failed_chains)} failed)' if listing.failed_chains else ''}"
        )
        return listing

    async def list_all_stores(self) -> list[Store]:
        """Stores of every chain concatenated; failed chains contribute nothing"""
        listing = await self.fetch_listing(ALL_CHAINS)
        return listing.stores


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
        if isinstance(body, dict) and body.get("detail"):
            return str(body["detail"])
    except ValueError:
        pass
    return response.text[:200] if response.text else "No response body"
