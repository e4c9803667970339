from fastapi import WebSocket
from typing import Dict, Optional
import logging
import uuid

from errors import UnknownClient
from models import Session

logger = logging.getLogger(__name__)


def new_client_id() -> str:
    """Fresh opaque 128-bit client identifier."""
    return str(uuid.uuid4())


class ConnectionRegistry:
    """Maps client ids to their live WebSocket."""

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}

    def __len__(self) -> int:
        return len(self.connections)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self.connections

    def register(self, client_id: str, websocket: WebSocket):
        self.connections[client_id] = websocket
        logger.info("New connection. ID: %s", client_id)

    def unregister(self, client_id: str):
        if self.connections.pop(client_id, None) is not None:
            logger.info("Connection %s unregistered", client_id)

    async def send(self, client_id: str, message: dict):
        ws = self.connections.get(client_id)
        if ws is None:
            raise UnknownClient(client_id)
        await ws.send_json(message)

    def clear(self):
        self.connections.clear()


class BroadcastDispatcher:
    """Best-effort fan-out of one message to every participant of a session."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def broadcast(self, session: Session, message: dict,
                        exclude: Optional[str] = None) -> int:
        delivered = 0
        for client_id in session.participant_ids():
            if client_id == exclude:
                continue
            try:
                await self.registry.send(client_id, message)
                delivered += 1
            except UnknownClient:
                logger.warning("Broadcast %s to game %s: client %s is not connected",
                               message.get("type"), session.id, client_id)
            except Exception:
                logger.exception("Broadcast %s to game %s: send to %s failed",
                                 message.get("type"), session.id, client_id)
        return delivered
