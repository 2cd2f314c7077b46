from __future__ import annotations

import logging
from typing import Any, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Broadcaster(Protocol):
    send_failures: int

    async def send_to_room(self, room_code: str, message: dict[str, Any]) -> None: ...

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> None: ...

    def register(self, connection_id: str, websocket: WebSocket) -> None: ...

    def unregister(self, connection_id: str) -> None: ...

    def subscribe(self, room_code: str, connection_id: str) -> None: ...

    def unsubscribe(self, room_code: str, connection_id: str) -> None: ...

    def drop_room(self, room_code: str) -> None: ...


class WebSocketBroadcaster:
    """Fan-out of JSON events over the connected WebSockets.

    Subscribers of a room are players and display observers alike; the room
    state machine decides who subscribes. Failed sends are counted and never
    raised, since the peer has usually already gone away.
    """

    def __init__(self) -> None:
        self.connections: dict[str, WebSocket] = {}
        # dict keys keep subscription order
        self.subscribers: dict[str, dict[str, None]] = {}
        self.send_failures = 0

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        self.connections[connection_id] = websocket

    def unregister(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)
        for room_code in list(self.subscribers):
            self.unsubscribe(room_code, connection_id)

    def subscribe(self, room_code: str, connection_id: str) -> None:
        self.subscribers.setdefault(room_code, {})[connection_id] = None

    def unsubscribe(self, room_code: str, connection_id: str) -> None:
        members = self.subscribers.get(room_code)
        if members is None:
            return
        members.pop(connection_id, None)
        if not members:
            self.subscribers.pop(room_code, None)

    def drop_room(self, room_code: str) -> None:
        self.subscribers.pop(room_code, None)

    def room_members(self, room_code: str) -> list[str]:
        return list(self.subscribers.get(room_code, {}))

    async def send_to_room(self, room_code: str, message: dict[str, Any]) -> None:
        for connection_id in self.room_members(room_code):
            await self.send_to_connection(connection_id, message)

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> None:
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return
        await self._send_safe(websocket, message, connection_id)

    async def _send_safe(self, websocket: WebSocket, data: dict[str, Any], connection_id: str) -> None:
        try:
            await websocket.send_json(data)
        except Exception as exc:
            # Connection may already be closed.
            self.send_failures += 1
            logger.debug(
                "[SEND_FAIL] connection=%s event=%s reason=%s ws_client_state=%s",
                connection_id,
                data.get("type"),
                repr(exc),
                getattr(websocket, "client_state", None),
            )
