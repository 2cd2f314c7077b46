from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .persistence import BackgroundPersistence
from .runtime_constants import ROOM_CODE_ATTEMPTS
from .runtime_errors import RoomCodeUnavailable, RoomNotFound
from .runtime_timers import RoomScheduler
from .runtime_types import Player, Room
from .runtime_utils import now_ms, random_room_code

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Process-wide owner of ``code -> Room``."""

    def __init__(
        self,
        persistence: BackgroundPersistence,
        code_factory: Callable[[], str] = random_room_code,
    ) -> None:
        self.rooms: dict[str, Room] = {}
        self.rooms_lock = asyncio.Lock()
        self.persistence = persistence
        self.scheduler = RoomScheduler(self.is_live)
        self._code_factory = code_factory

    @property
    def active_rooms_count(self) -> int:
        return len(self.rooms)

    @property
    def total_players(self) -> int:
        return sum(len(room.players) for room in self.rooms.values())

    def is_live(self, room: Room) -> bool:
        return self.rooms.get(room.code) is room

    def get_room(self, code: str) -> Room | None:
        return self.rooms.get(code)

    def require_room(self, code: str) -> Room:
        room = self.rooms.get(code)
        if room is None:
            raise RoomNotFound()
        return room

    def rooms_for_connection(self, connection_id: str) -> list[Room]:
        return [room for room in self.rooms.values() if room.get_player(connection_id) is not None]

    def rooms_watched_by(self, connection_id: str) -> list[Room]:
        return [room for room in self.rooms.values() if connection_id in room.displays]

    async def create_room(
        self,
        host_connection_id: str,
        host_name: str,
        category: str,
        venue_id: str | None = None,
    ) -> Room:
        created_at = now_ms()
        created: Room | None = None

        async with self.rooms_lock:
            for _ in range(ROOM_CODE_ATTEMPTS):
                code = self._code_factory()
                if code in self.rooms:
                    continue
                created = Room(
                    code=code,
                    host_connection_id=host_connection_id,
                    category=category,
                    created_at=created_at,
                    venue_id=venue_id,
                    players=[Player(connection_id=host_connection_id, name=host_name, joined_at=created_at)],
                )
                self.rooms[code] = created
                break

        if created is None:
            raise RoomCodeUnavailable()

        self.persistence.room_created(created)
        return created

    async def delete_room(self, code: str) -> bool:
        async with self.rooms_lock:
            room = self.rooms.pop(code, None)

        if room is None:
            return False

        self.scheduler.cancel_all(room)
        self.persistence.room_closed(code)
        return True

    async def clear(self) -> list[Room]:
        async with self.rooms_lock:
            rooms = list(self.rooms.values())
            self.rooms.clear()
        for room in rooms:
            self.scheduler.cancel_all(room)
        return rooms
