"""
Event publishing to connected staff displays.

Events are one-way, fire-and-forget broadcasts: a failed delivery to one
display is logged and that display dropped, it never fails the caller.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set, Union

from fastapi import WebSocket
from pydantic import BaseModel

from domain.enums import EventName


logger = logging.getLogger(__name__)

Payload = Union[BaseModel, Dict[str, Any], None]


def serialize_payload(payload: Payload) -> Optional[Dict[str, Any]]:
    """Turn a pydantic model or dict into JSON-ready data."""
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return payload


class EventPublisher(ABC):
    """Publishes named events to every subscriber."""

    @abstractmethod
    async def publish(self, event: EventName, payload: Payload = None) -> None:
        """Deliver one event; must not raise on delivery failure."""


class WebSocketBroadcaster(EventPublisher):
    """Broadcasts events over accepted FastAPI WebSocket connections."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept WebSocket connection and track it."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"Display connected ({len(self.active_connections)} active)")

    def disconnect(self, websocket: WebSocket) -> None:
        """Stop tracking a connection."""
        self.active_connections.discard(websocket)
        logger.info(f"Display disconnected ({len(self.active_connections)} active)")

    async def publish(self, event: EventName, payload: Payload = None) -> None:
        message = {"event": event.value, "data": serialize_payload(payload)}
        logger.debug(f"Publishing {event.value} to {len(self.active_connections)} displays")

        for websocket in list(self.active_connections):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping display after failed send of {event.value}: {e}")
                self.disconnect(websocket)

    def get_active_connections_count(self) -> int:
        """Get count of active connections."""
        return len(self.active_connections)
