"""Health endpoints: liveness and readiness."""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from pigmap.db import database
from pigmap.services.redis_client import RedisSnapshotStore

router = APIRouter(tags=["health"])
logger = logging.getLogger("pigmap.health")


@router.get("/health/live")
async def liveness():
    """Liveness: process is running. No dependencies checked."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness: DB reachable, snapshot store reachable when it is Redis."""
    errors = []
    try:
        async with database.AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("DB readiness check failed: %s", e)
        errors.append("database")

    store = getattr(request.app.state, "snapshot_store", None)
    if isinstance(store, RedisSnapshotStore):
        try:
            await store.ping()
        except Exception as e:
            logger.warning("Redis readiness check failed: %s", e)
            errors.append("redis")

    coordinator = getattr(request.app.state, "coordinator", None)
    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "errors": errors},
        )
    return {
        "status": "ok",
        "connections": coordinator.connection_count if coordinator else 0,
        "cached_reports": len(coordinator.reports) if coordinator else 0,
    }
