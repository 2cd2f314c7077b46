from __future__ import annotations

import json
import logging
import random
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from .broadcast import Broadcaster, WebSocketBroadcaster
from .persistence import BackgroundPersistence, DatabasePersistenceSink, PersistenceSink
from .question_bank import normalize_category
from .runtime_constants import DEFAULT_TIMINGS, MAX_PLAYERS_PER_ROOM, GameTimings
from .runtime_errors import (
    AlreadyInRoom,
    GameAlreadyStarted,
    NameTaken,
    RoomFull,
    RoomNotFound,
    StaleAnswer,
    TriviaError,
)
from .runtime_message_handlers import handle_message as handle_room_message
from .runtime_phase_flow import (
    begin_questions as begin_room_questions,
    end_game as end_room_game,
    purge_room as purge_ended_room,
    start_game as start_room_game,
)
from .runtime_question_flow import (
    advance_question as advance_room_question,
    all_players_answered,
    dispatch_question as dispatch_room_question,
    handle_question_timeout as handle_room_question_timeout,
    resolve_question as resolve_room_question,
    submit_answer as submit_room_answer,
)
from .runtime_registry import RoomRegistry
from .runtime_state_builders import (
    build_display_snapshot,
    build_player,
    build_question_payload,
    build_roster,
    build_room_summary,
)
from .runtime_types import Player, Room
from .runtime_utils import now_ms, random_id, sanitize_player_name, sanitize_room_code

logger = logging.getLogger(__name__)


class TriviaRuntime:
    def __init__(
        self,
        *,
        broadcaster: Broadcaster | None = None,
        persistence_sink: PersistenceSink | None = None,
        timings: GameTimings | None = None,
        rng: random.Random | None = None,
        max_players: int = MAX_PLAYERS_PER_ROOM,
    ) -> None:
        self.broadcaster: Broadcaster = broadcaster or WebSocketBroadcaster()
        self.persistence = BackgroundPersistence(persistence_sink or DatabasePersistenceSink())
        self.registry = RoomRegistry(self.persistence)
        self.scheduler = self.registry.scheduler
        self.timings = timings or DEFAULT_TIMINGS
        self.rng = rng
        self.max_players = max(1, int(max_players))
        self._ws_stats: dict[str, int] = {
            "connectSuccess": 0,
            "disconnects": 0,
            "messageReceived": 0,
            "pingReceived": 0,
            "errorsSent": 0,
            "roomsCreated": 0,
            "gamesStarted": 0,
            "hostReassigned": 0,
            "displayAttached": 0,
            "activeConnections": 0,
            "peakConnections": 0,
        }

    @property
    def active_rooms_count(self) -> int:
        return self.registry.active_rooms_count

    def _increment_stat(self, key: str, amount: int = 1) -> None:
        self._ws_stats[key] = int(self._ws_stats.get(key, 0)) + amount

    def _on_connect(self) -> None:
        self._increment_stat("connectSuccess")
        active_connections = int(self._ws_stats.get("activeConnections", 0)) + 1
        self._ws_stats["activeConnections"] = active_connections
        if active_connections > int(self._ws_stats.get("peakConnections", 0)):
            self._ws_stats["peakConnections"] = active_connections

    def _on_disconnect(self) -> None:
        self._increment_stat("disconnects")
        active_connections = max(0, int(self._ws_stats.get("activeConnections", 0)) - 1)
        self._ws_stats["activeConnections"] = active_connections

    def _log_ws_event(self, event: str, level: int = logging.INFO, **fields: object) -> None:
        logger.log(
            level,
            "ws.%s %s",
            event,
            json.dumps(fields, ensure_ascii=False, separators=(",", ":")),
        )

    def get_ws_stats(self) -> dict[str, Any]:
        room_summaries = [build_room_summary(room) for room in self.registry.rooms.values()]
        room_summaries.sort(key=lambda item: int(item.get("playerCount", 0)), reverse=True)
        return {
            "generatedAt": now_ms(),
            "activeRooms": len(room_summaries),
            "totalPlayers": self.registry.total_players,
            "stats": {
                **self._ws_stats,
                "sendFailures": self.broadcaster.send_failures,
                "persistenceFailures": self.persistence.failures,
            },
            "rooms": room_summaries[:50],
        }

    def room_summary(self, room_code: str) -> dict[str, Any] | None:
        room = self.registry.get_room(sanitize_room_code(room_code))
        if room is None:
            return None
        return build_room_summary(room)

    async def send_error(self, connection_id: str, error: TriviaError) -> None:
        self._increment_stat("errorsSent")
        await self.broadcaster.send_to_connection(connection_id, error.to_payload())
        self._log_ws_event(
            "error_sent",
            level=logging.WARNING,
            connectionId=connection_id,
            code=error.code,
        )

    async def handle_websocket(self, websocket: WebSocket) -> None:
        await websocket.accept()

        connection_id = random_id()
        self.broadcaster.register(connection_id, websocket)
        self._on_connect()
        await self.broadcaster.send_to_connection(
            connection_id,
            {"type": "connected", "connectionId": connection_id},
        )
        self._log_ws_event("connect", connectionId=connection_id)

        disconnect_code: int | None = None
        disconnect_reason = "unknown"

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if not isinstance(data, dict):
                    continue
                self._increment_stat("messageReceived")
                await handle_room_message(self, connection_id, data)
        except WebSocketDisconnect as exc:
            disconnect_code = exc.code
            disconnect_reason = "websocket_disconnect"
        except Exception:
            disconnect_reason = "server_error"
            logger.exception("Unexpected websocket error for connection %s", connection_id)
        finally:
            await self.disconnect(connection_id)
            self._on_disconnect()
            self._log_ws_event(
                "disconnect",
                connectionId=connection_id,
                reason=disconnect_reason,
                closeCode=disconnect_code,
            )

    async def create_room(
        self,
        connection_id: str,
        player_name: Any,
        category: Any = None,
        venue_id: str | None = None,
    ) -> Room:
        name = sanitize_player_name(player_name)
        normalized_category = normalize_category(category)

        await self._leave_other_rooms(connection_id, keep=None)
        room = await self.registry.create_room(
            connection_id,
            name,
            normalized_category,
            venue_id=(venue_id or "").strip() or None,
        )
        self._increment_stat("roomsCreated")

        async with room.lock:
            self.broadcaster.subscribe(room.code, connection_id)
            await self.broadcaster.send_to_connection(
                connection_id,
                {
                    "type": "room_created",
                    "roomCode": room.code,
                    "isHost": True,
                    "category": room.category,
                    "players": build_roster(room),
                },
            )

        logger.info("Room created: %s by %s", room.code, name)
        self._log_ws_event(
            "room_created",
            roomCode=room.code,
            connectionId=connection_id,
            category=room.category,
        )
        return room

    def _check_joinable(self, room: Room, connection_id: str, name: str) -> None:
        if room.get_player(connection_id) is not None:
            raise AlreadyInRoom()
        if room.started:
            raise GameAlreadyStarted()
        if room.has_name(name):
            raise NameTaken()
        if len(room.players) >= self.max_players:
            raise RoomFull()

    async def join_room(self, connection_id: str, room_code: Any, player_name: Any) -> Room:
        code = sanitize_room_code(room_code)
        room = self.registry.require_room(code)
        name = sanitize_player_name(player_name)

        self._check_joinable(room, connection_id, name)
        await self._leave_other_rooms(connection_id, keep=room)

        async with room.lock:
            if not self.registry.is_live(room):
                raise RoomNotFound()
            self._check_joinable(room, connection_id, name)

            player = Player(connection_id=connection_id, name=name, joined_at=now_ms())
            room.players.append(player)
            room.displays.discard(connection_id)
            self.broadcaster.subscribe(room.code, connection_id)

            roster = build_roster(room)
            await self.broadcaster.send_to_room(
                room.code,
                {
                    "type": "player_joined",
                    "player": build_player(room, player),
                    "players": roster,
                    "displayAnnouncement": f"{name} joined!",
                },
            )
            await self.broadcaster.send_to_connection(
                connection_id,
                {
                    "type": "room_joined",
                    "roomCode": room.code,
                    "isHost": False,
                    "category": room.category,
                    "players": roster,
                    "hostName": room.host_name,
                },
            )
            self.persistence.player_joined(room, player)

        logger.info("%s joined room %s", name, room.code)
        self._log_ws_event("player_joined", roomCode=room.code, connectionId=connection_id)
        return room

    async def start_game(self, connection_id: str, room_code: Any) -> None:
        room = self.registry.require_room(sanitize_room_code(room_code))
        async with room.lock:
            if not self.registry.is_live(room):
                raise RoomNotFound()
            await start_room_game(self, room, connection_id)
        self._increment_stat("gamesStarted")

    async def submit_answer(
        self,
        connection_id: str,
        room_code: Any,
        answer_index: int,
        time_left: Any,
    ) -> int:
        room = self.registry.get_room(sanitize_room_code(room_code))
        if room is None:
            raise StaleAnswer()
        async with room.lock:
            player = room.get_player(connection_id)
            if not self.registry.is_live(room) or player is None:
                raise StaleAnswer()
            return await submit_room_answer(self, room, player, answer_index, time_left)

    async def leave_room(self, connection_id: str, room_code: Any) -> None:
        room = self.registry.get_room(sanitize_room_code(room_code))
        if room is None:
            return
        async with room.lock:
            if not self.registry.is_live(room):
                return
            room.displays.discard(connection_id)
            if not await self._remove_player(room, connection_id):
                self.broadcaster.unsubscribe(room.code, connection_id)

    async def disconnect(self, connection_id: str) -> None:
        for room in self.registry.rooms_for_connection(connection_id):
            async with room.lock:
                if self.registry.is_live(room):
                    await self._remove_player(room, connection_id)
        for room in self.registry.rooms_watched_by(connection_id):
            room.displays.discard(connection_id)
        self.broadcaster.unregister(connection_id)

    async def join_as_display(self, connection_id: str, room_code: Any) -> Room:
        room = self.registry.require_room(sanitize_room_code(room_code))
        async with room.lock:
            if not self.registry.is_live(room):
                raise RoomNotFound()
            room.displays.add(connection_id)
            self.broadcaster.subscribe(room.code, connection_id)
            self._increment_stat("displayAttached")

            await self.broadcaster.send_to_connection(connection_id, build_display_snapshot(room))
            if room.question_started_at is not None:
                question_payload = build_question_payload(room)
                if question_payload is not None:
                    await self.broadcaster.send_to_connection(connection_id, question_payload)

        logger.info("Display connected to room %s", room.code)
        return room

    async def shutdown(self) -> None:
        rooms = await self.registry.clear()
        for room in rooms:
            self.broadcaster.drop_room(room.code)
        await self.persistence.drain()

    async def _leave_other_rooms(self, connection_id: str, keep: Room | None) -> None:
        for other in self.registry.rooms_for_connection(connection_id):
            if other is keep:
                continue
            await self.leave_room(connection_id, other.code)

    async def _remove_player(self, room: Room, connection_id: str) -> bool:
        player = room.get_player(connection_id)
        if player is None:
            return False

        room.players.remove(player)
        self.broadcaster.unsubscribe(room.code, connection_id)

        if not room.players:
            await self._remove_room(room, reason="empty")
            return True

        if room.host_connection_id == connection_id:
            new_host = room.players[0]
            room.host_connection_id = new_host.connection_id
            self._increment_stat("hostReassigned")
            await self.broadcaster.send_to_room(
                room.code,
                {
                    "type": "new_host",
                    "hostId": new_host.connection_id,
                    "hostName": new_host.name,
                },
            )

        await self.broadcaster.send_to_room(
            room.code,
            {
                "type": "player_left",
                "playerName": player.name,
                "playerId": player.connection_id,
                "players": build_roster(room),
                "displayAnnouncement": f"{player.name} left",
            },
        )

        if room.question_active and all_players_answered(room):
            await resolve_room_question(self, room, reason="all-answered")

        self._log_ws_event("player_left", roomCode=room.code, connectionId=connection_id)
        return True

    async def _remove_room(self, room: Room, reason: str) -> None:
        if not await self.registry.delete_room(room.code):
            return
        await self.broadcaster.send_to_room(room.code, {"type": "room_closed", "roomCode": room.code})
        self.broadcaster.drop_room(room.code)
        room.displays.clear()
        logger.info("Room %s cleaned up (%s)", room.code, reason)
        self._log_ws_event("room_closed", roomCode=room.code, reason=reason)

    async def _dispatch_question(self, room: Room) -> None:
        await dispatch_room_question(self, room)

    async def _begin_questions(self, room: Room) -> None:
        await begin_room_questions(self, room)

    async def _on_question_timeout(self, room: Room, question_index: int) -> None:
        await handle_room_question_timeout(self, room, question_index)

    async def _advance_question(self, room: Room, question_index: int) -> None:
        await advance_room_question(self, room, question_index)

    async def _end_game(self, room: Room) -> None:
        await end_room_game(self, room)

    async def _purge_room(self, room: Room) -> None:
        await purge_ended_room(self, room)


runtime = TriviaRuntime()
