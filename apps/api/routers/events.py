"""WebSocket endpoint pushing engine events to staff displays."""

import logging
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from apps.api.deps import get_services
from services.events import WebSocketBroadcaster
from services.registry import Services


logger = logging.getLogger(__name__)
router = APIRouter(tags=["events"])


@router.websocket("/ws")
async def events_websocket(websocket: WebSocket, services: Services = Depends(get_services)):
    """
    Subscribe a display to the event stream.

    Messages are {"event": name, "data": payload}. Anything the display sends
    is ignored; the connection is only kept open to receive events.
    """
    broadcaster = services.events
    if not isinstance(broadcaster, WebSocketBroadcaster):
        await websocket.close(code=1011, reason="Event streaming unavailable")
        return

    await broadcaster.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Display closed the event stream")
    finally:
        broadcaster.disconnect(websocket)
