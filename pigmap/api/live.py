"""
Live updates.

- WS  /live           : snapshot ("initial") on connect, then new/update/comment events
- GET /live/snapshot  : the same snapshot for clients that poll
"""
import logging

from fastapi import APIRouter, Depends, WebSocket

from pigmap.api.deps import get_coordinator
from pigmap.services.coordinator import LiveCoordinator

router = APIRouter()
logger = logging.getLogger("pigmap.live")


@router.websocket("/live")
async def live_socket(websocket: WebSocket):
    """
    Register the socket with the coordinator until the client goes away.
    Connect with: websocat ws://localhost:8000/api/live
    """
    coordinator: LiveCoordinator = websocket.app.state.coordinator
    await websocket.accept()
    conn = await coordinator.subscribe(websocket)
    try:
        # Client messages carry nothing; read only to notice the close.
        while conn.open:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        coordinator.unsubscribe(conn)
        logger.debug("live socket %s closed", conn.id)


@router.get("/live/snapshot", summary="Cached reports and comments as the initial live message")
async def live_snapshot(coordinator: LiveCoordinator = Depends(get_coordinator)):
    return coordinator.snapshot()
