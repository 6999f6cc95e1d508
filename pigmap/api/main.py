"""
FastAPI application for PigMap.

- Health: /health/live, /health/ready
- API: /api/reports, /api/reports/{id}/comments, /api/region, /api/live (WebSocket)
- Media: uploaded files served under settings.MEDIA_BASE_URL
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from pigmap.core.config import settings
from pigmap.api.health import router as health_router
from pigmap.api.live import router as live_router
from pigmap.api.router import router as api_router
from pigmap.db.database import dispose_engine, init_db
from pigmap.services.blob_store import LocalBlobStore
from pigmap.services.coordinator import LiveCoordinator
from pigmap.services.redis_client import close_redis
from pigmap.services.snapshot_store import build_snapshot_store

logger = logging.getLogger("pigmap.app")


def _setup_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    await init_db()

    blob_store = LocalBlobStore()
    blob_store.ensure_root()
    snapshot_store = build_snapshot_store()
    coordinator = LiveCoordinator(snapshot_store)
    await coordinator.load()

    app.state.blob_store = blob_store
    app.state.snapshot_store = snapshot_store
    app.state.coordinator = coordinator
    logger.info(
        "PigMap started: coordinator %s, snapshot backend %s",
        coordinator.name,
        settings.SNAPSHOT_BACKEND,
    )

    yield

    await coordinator.close()
    await close_redis()
    await dispose_engine()
    logger.info("PigMap stopped")


app = FastAPI(
    title="PigMap API",
    description="Crowd-sourced livestock sightings with live updates",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0]["msg"].removeprefix("Value error, ") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"detail": detail})


app.include_router(health_router)
app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(live_router, prefix=settings.API_PREFIX)
app.mount(
    settings.MEDIA_BASE_URL,
    StaticFiles(directory=settings.MEDIA_DIR, check_dir=False),
    name="media",
)
