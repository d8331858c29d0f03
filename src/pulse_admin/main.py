"""
# Pulse Admin Service

FastAPI application for the admin console's content and access tooling: daily
reflection prompts, programming-access moderation, and challenge search.

## Lifespan

**Startup:**
1. Connect to MongoDB and ensure indexes.
2. Warm the challenge cache (persisted Redis blob, else the catalog). A cache failure is
   logged and does not block startup; searches return nothing until a refresh succeeds.

**Shutdown:**
1. Close the Redis client.
2. Disconnect from MongoDB.

## Metrics

Request counts and latencies are exported for Prometheus on `/metrics`.

## Running

```bash
uvicorn pulse_admin.main:app --host 127.0.0.1 --port 8000
```
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
import uvicorn

from pulse_admin import __description__, __version__
from pulse_admin.config import settings
from pulse_admin.database import db_manager
from pulse_admin.managers.logging_manager import get_logger
from pulse_admin.managers.redis_manager import redis_manager
from pulse_admin.routes import access_requests_router, challenges_router, reflections_router
from pulse_admin.services.challenge_cache import challenge_cache

logger = get_logger(prefix="[MAIN]")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Connect shared resources before serving and release them afterwards.

    Raises:
        Exception: If MongoDB cannot be reached after the connection retries.
    """
    startup_start_time = time.time()
    logger.info(
        "Starting Pulse Admin Service v%s (%s)",
        __version__,
        "production" if settings.is_production else "development",
    )

    await db_manager.connect()
    await db_manager.create_indexes()

    result = await challenge_cache.initialize()
    if result.ok:
        logger.info("Challenge cache ready with %d entries", result.value)
    else:
        logger.warning("Challenge cache unavailable at startup: %s", result.error.message)

    logger.info("Startup completed in %.3fs", time.time() - startup_start_time)

    yield

    logger.info("Shutting down Pulse Admin Service")
    await redis_manager.close()
    await db_manager.disconnect()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Pulse Admin Service",
    description=__description__,
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
    openapi_tags=[
        {"name": "Daily Reflections", "description": "Daily reflection prompts, general and per challenge"},
        {"name": "Programming Access", "description": "Moderation of programming-access requests"},
        {"name": "Challenges", "description": "Search over the cached challenge catalog"},
        {"name": "System", "description": "Service health"},
    ],
)

for router in (reflections_router, access_requests_router, challenges_router):
    app.include_router(router)

logger.info("Setting up Prometheus metrics instrumentation...")
try:
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
    )
    instrumentator.add().instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")
    logger.info("Prometheus metrics exposed on /metrics")
except Exception as e:
    # The service runs without metrics rather than failing to start.
    logger.error("Failed to configure Prometheus metrics: %s", e, exc_info=True)


@app.get("/health", tags=["System"])
async def health_check():
    """Liveness plus a MongoDB ping. Returns 503 when the database is unreachable."""
    database_ok = await db_manager.health_check()
    body = {
        "status": "healthy" if database_ok else "unhealthy",
        "database": "connected" if database_ok else "disconnected",
        "challenge_cache": "loading" if challenge_cache.is_loading else "ready",
        "version": __version__,
    }
    return JSONResponse(status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE, content=body)


if __name__ == "__main__":
    uvicorn.run("pulse_admin.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG, log_level="info")
