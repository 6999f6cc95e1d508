"""Request-scoped access to the process-wide services built in the lifespan."""
from fastapi import Request

from pigmap.services.blob_store import LocalBlobStore
from pigmap.services.coordinator import LiveCoordinator


def get_coordinator(request: Request) -> LiveCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise RuntimeError("Live coordinator not initialized")
    return coordinator


def get_blob_store(request: Request) -> LocalBlobStore:
    return request.app.state.blob_store
