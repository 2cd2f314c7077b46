"""
Shared fixtures for the trivia runtime tests.

Rooms run with millisecond pacing so the timer paths (pre-start, timeout,
advance, purge) complete inside a test without sleeping for real seconds.
"""
from __future__ import annotations

import asyncio
import random
from typing import Any

import pytest
import pytest_asyncio

from trivia.persistence import NullPersistenceSink
from trivia.runtime import TriviaRuntime
from trivia.runtime_constants import GameTimings

FAST_TIMINGS = GameTimings(
    pre_start_ms=5,
    question_timeout_ms=2000,
    all_answered_advance_ms=5,
    timeout_advance_ms=5,
    purge_grace_ms=2000,
)


# ---------------------------------------------------------------------------
# Mock WebSocket
# ---------------------------------------------------------------------------

class MockWebSocket:
    """Lightweight mock for fastapi.WebSocket."""

    def __init__(self) -> None:
        self.sent_messages: list[dict[str, Any]] = []

    async def send_json(self, data: dict[str, Any]) -> None:
        self.sent_messages.append(data)

    def last(self, msg_type: str) -> dict[str, Any] | None:
        """Return the last sent message of a given type."""
        for msg in reversed(self.sent_messages):
            if msg.get("type") == msg_type:
                return msg
        return None

    def all(self, msg_type: str) -> list[dict[str, Any]]:
        """Return all sent messages of a given type."""
        return [m for m in self.sent_messages if m.get("type") == msg_type]

    def types(self) -> list[str]:
        return [str(m.get("type")) for m in self.sent_messages]


class BrokenWebSocket(MockWebSocket):
    async def send_json(self, data: dict[str, Any]) -> None:
        raise RuntimeError("socket closed")


class RecordingSink(NullPersistenceSink):
    def __init__(self) -> None:
        self.rooms_created: list[str] = []
        self.players_joined: list[tuple[str, str]] = []
        self.games: list[tuple[str, str, int, list[dict[str, Any]]]] = []
        self.rooms_closed: list[str] = []

    async def record_room_created(self, room) -> None:
        self.rooms_created.append(room.code)

    async def record_player_joined(self, room, player) -> None:
        self.players_joined.append((room.code, player.name))

    async def record_game_completed(self, room, standings) -> None:
        self.games.append((room.code, room.category, len(room.questions), standings))

    async def record_room_closed(self, room_code: str) -> None:
        self.rooms_closed.append(room_code)


class FailingSink(NullPersistenceSink):
    async def record_room_created(self, room) -> None:
        raise RuntimeError("database is down")

    async def record_player_joined(self, room, player) -> None:
        raise RuntimeError("database is down")

    async def record_game_completed(self, room, standings) -> None:
        raise RuntimeError("database is down")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_runtime(sink=None, timings: GameTimings = FAST_TIMINGS, **kwargs: Any) -> TriviaRuntime:
    return TriviaRuntime(
        persistence_sink=sink or RecordingSink(),
        timings=timings,
        rng=random.Random(7),
        **kwargs,
    )


def connect(runtime: TriviaRuntime, connection_id: str, websocket: MockWebSocket | None = None) -> MockWebSocket:
    ws = websocket or MockWebSocket()
    runtime.broadcaster.register(connection_id, ws)
    return ws


async def wait_for(ws: MockWebSocket, msg_type: str, count: int = 1, timeout: float = 2.0) -> dict[str, Any]:
    """Poll until ``ws`` has received ``count`` messages of ``msg_type``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(ws.all(msg_type)) < count:
        if loop.time() > deadline:
            raise AssertionError(f"timed out waiting for {count}x {msg_type}; got {ws.types()}")
        await asyncio.sleep(0.005)
    return ws.all(msg_type)[count - 1]


async def setup_room(runtime: TriviaRuntime, names=("A", "B", "C"), category: str = "general"):
    """Create a room hosted by the first name and join the rest, one socket each."""
    sockets: dict[str, MockWebSocket] = {}
    host, *guests = names
    sockets[host] = connect(runtime, f"conn-{host}")
    room = await runtime.create_room(f"conn-{host}", host, category=category)
    for name in guests:
        sockets[name] = connect(runtime, f"conn-{name}")
        await runtime.join_room(f"conn-{name}", room.code, name)
    return room, sockets


async def start_and_wait(runtime: TriviaRuntime, room, sockets: dict[str, MockWebSocket]) -> dict[str, Any]:
    host_ws = next(iter(sockets.values()))
    await runtime.start_game(room.host_connection_id, room.code)
    return await wait_for(host_ws, "new_question")


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest_asyncio.fixture
async def runtime(sink: RecordingSink):
    rt = make_runtime(sink)
    yield rt
    await rt.shutdown()
