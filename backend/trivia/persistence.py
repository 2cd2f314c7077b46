from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Protocol

from . import database
from .runtime_types import Player, Room

logger = logging.getLogger(__name__)


class PersistenceSink(Protocol):
    async def record_room_created(self, room: Room) -> None: ...

    async def record_player_joined(self, room: Room, player: Player) -> None: ...

    async def record_game_completed(self, room: Room, standings: list[dict[str, Any]]) -> None: ...

    async def record_room_closed(self, room_code: str) -> None: ...


class NullPersistenceSink:
    async def record_room_created(self, room: Room) -> None:
        return None

    async def record_player_joined(self, room: Room, player: Player) -> None:
        return None

    async def record_game_completed(self, room: Room, standings: list[dict[str, Any]]) -> None:
        return None

    async def record_room_closed(self, room_code: str) -> None:
        return None


class DatabasePersistenceSink:
    """Writes through the asyncpg pool.

    Errors propagate to the caller; ``BackgroundPersistence`` logs and counts
    them.
    """

    async def record_room_created(self, room: Room) -> None:
        await database.insert_room(
            room_code=room.code,
            host_id=room.host_connection_id,
            host_name=room.host_name or "",
            category=room.category,
            venue_id=room.venue_id,
        )

    async def record_player_joined(self, room: Room, player: Player) -> None:
        await database.insert_player(room.code, player.connection_id, player.name)

    async def record_game_completed(self, room: Room, standings: list[dict[str, Any]]) -> None:
        game_id = await database.save_game_result(
            room_code=room.code,
            category=room.category,
            total_questions=len(room.questions),
            scores=standings,
        )
        logger.info("Stored game %s for room %s", game_id, room.code)

    async def record_room_closed(self, room_code: str) -> None:
        await database.mark_room_closed(room_code)


class BackgroundPersistence:
    """Runs sink calls as tracked background tasks.

    Gameplay never awaits a write: every call returns immediately and any
    exception that escapes the sink is logged from the task callback.
    """

    def __init__(self, sink: PersistenceSink) -> None:
        self.sink = sink
        self._tasks: set[asyncio.Future[None]] = set()
        self.failures = 0

    def room_created(self, room: Room) -> None:
        self._spawn(self.sink.record_room_created(room), f"room-created:{room.code}")

    def player_joined(self, room: Room, player: Player) -> None:
        self._spawn(self.sink.record_player_joined(room, player), f"player-joined:{room.code}")

    def game_completed(self, room: Room, standings: list[dict[str, Any]]) -> None:
        rows = [dict(row) for row in standings]
        self._spawn(self.sink.record_game_completed(room, rows), f"game-completed:{room.code}")

    def room_closed(self, room_code: str) -> None:
        self._spawn(self.sink.record_room_closed(room_code), f"room-closed:{room_code}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Awaitable[None], label: str) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._finish(done, label))

    def _finish(self, task: asyncio.Future[None], label: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.failures += 1
            logger.error("Persistence task %s failed", label, exc_info=exc)
