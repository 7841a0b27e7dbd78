from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time
import asyncio

from .config import settings
from .core.database import Database
from .core.redis import create_redis_client, close_redis_client
from .core.logger import setup_logging
from .core.http_client import close_http_client


class SecurityHeadersMiddleware:
    """Add security headers to all responses (pure ASGI, avoids BaseHTTPMiddleware CORS bug)"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                extra_headers = [
                    (b"x-content-type-options", b"nosniff"),
                    (b"x-frame-options", b"DENY"),
                    (b"referrer-policy", b"strict-origin-when-cross-origin"),
                ]
                if not settings.debug:
                    extra_headers.append(
                        (b"strict-transport-security", b"max-age=31536000; includeSubDomains")
                    )
                message["headers"] = list(message.get("headers", [])) + extra_headers
            await send(message)

        await self.app(scope, receive, send_wrapper)

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def log_step(step_name: str, start_time: float) -> float:
    """Log step completion with timing"""
    elapsed = time.time() - start_time
    logger.info(f"[STARTUP] {step_name} completed in {elapsed:.2f}s")
    return time.time()


async def _safe_background_task(coro_func, *args, name="task", restart_delay=60):
    """Wrapper that restarts background tasks on crash. For long-running tasks only."""
    while True:
        try:
            await coro_func(*args)
            break  # If coroutine completes normally, exit
        except asyncio.CancelledError:
            logger.info(f"[BG] {name} cancelled")
            break
        except Exception as e:
            logger.error(f"[BG] {name} crashed: {e}, restarting in {restart_delay}s")
            await asyncio.sleep(restart_delay)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI app"""
    total_start = time.time()
    background_tasks: list[asyncio.Task] = []

    # Startup
    logger.info(f"[STARTUP] Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"[STARTUP] Debug: {settings.debug}")

    db = Database()
    app.state.db = db
    app.state.redis = None

    try:
        step_start = time.time()

        # Initialize database pool
        logger.info("[STARTUP] Connecting to database...")
        await db.connect()
        step_start = log_step("Database pool", step_start)

        # Redis only guards concurrent syncs, so the API can run without it
        logger.info("[STARTUP] Connecting to Redis...")
        try:
            app.state.redis = await create_redis_client()
            step_start = log_step("Redis client", step_start)
        except Exception as e:
            logger.warning(f"[STARTUP] ⚠️ Redis unavailable, syncs will run without a lock: {e}")

        if settings.store_sync_interval_minutes > 0:
            logger.info("[STARTUP] Starting periodic store sync in background...")
            from .services.store_sync_service import build_store_sync_service, periodic_store_sync
            service = build_store_sync_service(db, app.state.redis)
            background_tasks.append(asyncio.create_task(_safe_background_task(
                periodic_store_sync, service, name="store_sync", restart_delay=60
            )))

        total_elapsed = time.time() - total_start
        logger.info(f"[STARTUP] ✅ Application ready in {total_elapsed:.2f}s")

    except Exception as e:
        logger.error(f"[STARTUP] ❌ Failed to initialize: {e}")
        raise

    yield

    # Shutdown
    logger.info("[SHUTDOWN] Shutting down application...")
    for task in background_tasks:
        task.cancel()
    if background_tasks:
        await asyncio.gather(*background_tasks, return_exceptions=True)
    await close_http_client()
    await db.close()
    await close_redis_client()
    logger.info("[SHUTDOWN] Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
    max_age=3600,  # Cache preflight requests for 1 hour
)


# Health check endpoint
@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint with dependency validation"""
    checks = {
        "database": "unknown",
        "redis": "unknown",
    }

    # Check database
    try:
        async with request.app.state.db.acquire() as conn:
            await conn.fetchval("SELECT 1")
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)[:50]}"

    # Check Redis
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        checks["redis"] = "unavailable"
    else:
        try:
            await redis.ping()
            checks["redis"] = "healthy"
        except Exception as e:
            checks["redis"] = f"unhealthy: {str(e)[:50]}"

    # Overall status
    all_healthy = all(v == "healthy" for v in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "checks": checks,
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.debug else "disabled",
    }


# Include all routers
from .routers import stores, chains, users

app.include_router(stores.router, prefix=f"{settings.api_prefix}/stores", tags=["Stores"])
app.include_router(chains.router, prefix=f"{settings.api_prefix}/chains", tags=["Chains"])
app.include_router(users.router, prefix=settings.api_prefix, tags=["Users"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storemap.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
