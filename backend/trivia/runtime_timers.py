from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from .runtime_types import Room

logger = logging.getLogger(__name__)

PRE_START_TIMER = "pre-start"
QUESTION_TIMEOUT_TIMER = "question-timeout"
ADVANCE_TIMER = "advance"
PURGE_TIMER = "purge"

RoomCallback = Callable[..., Awaitable[None]]


class RoomScheduler:
    """One-shot timers keyed per room.

    A timer only runs its callback when ``is_live(room)`` still holds when it
    fires, both before and after taking the room lock, so a purge or a leave
    that removes the room turns every pending timer into a no-op.
    """

    def __init__(self, is_live: Callable[[Room], bool]) -> None:
        self._is_live = is_live

    def after(
        self,
        room: Room,
        key: str,
        delay_ms: int,
        callback: RoomCallback,
        *args: Any,
    ) -> None:
        self.cancel(room, key)
        delay_s = max(0.0, (delay_ms or 0) / 1000)

        async def runner() -> None:
            try:
                await asyncio.sleep(delay_s)
            except asyncio.CancelledError:
                return
            if not self._is_live(room):
                return
            async with room.lock:
                if not self._is_live(room):
                    return
                try:
                    await callback(room, *args)
                except Exception:
                    logger.exception("Timer %s failed for room %s", key, room.code)

        room.timers[key] = asyncio.create_task(runner(), name=f"{room.code}:{key}")

    def cancel(self, room: Room, key: str) -> None:
        task = room.timers.get(key)
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
        room.timers[key] = None

    def cancel_all(self, room: Room) -> None:
        for key in list(room.timers):
            self.cancel(room, key)

    def pending(self, room: Room) -> list[str]:
        return [key for key, task in room.timers.items() if task is not None and not task.done()]
