"""
REST endpoints through FastAPI's TestClient.

The client is used without its context manager so the startup hooks (which
open the database pool and Redis) never run; collaborators are patched.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import make_runtime
from trivia.api import rooms as rooms_api
from trivia.api import stats as stats_api
from trivia.api import system as system_api
from trivia.application import create_app
from trivia.runtime_types import Player, Room


@pytest.fixture
def live_runtime(monkeypatch):
    rt = make_runtime()
    room = Room(code="GAME", host_connection_id="h1", category="sports", created_at=1_700_000_000_000)
    room.players.extend([Player(connection_id="h1", name="Host"), Player(connection_id="p2", name="Guest")])
    rt.registry.rooms[room.code] = room
    monkeypatch.setattr(rooms_api, "runtime", rt)
    monkeypatch.setattr(system_api, "runtime", rt)
    return rt


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


class TestRoomRoutes:
    def test_room_info(self, client, live_runtime):
        response = client.get("/api/trivia/room/game")
        assert response.status_code == 200
        room = response.json()
        assert room["code"] == "GAME"
        assert room["hostName"] == "Host"
        assert room["category"] == "sports"
        assert room["playerCount"] == 2
        assert room["started"] is False

    def test_room_not_found(self, client, live_runtime):
        response = client.get("/api/trivia/room/NOPE")
        assert response.status_code == 404
        assert response.json()["detail"] == "Room not found"

    def test_active_rooms(self, client, live_runtime):
        body = client.get("/api/trivia/active-rooms").json()
        assert body["activeRooms"] == 1
        assert body["totalPlayers"] == 2


class TestLeaderboardRoutes:
    def test_leaderboard_passes_filters(self, client, monkeypatch):
        calls = []

        async def fake_fetch(*, category, period, limit):
            calls.append((category, period, limit))
            return [{"player_name": "Ann", "best_score": 1900, "games_played": 3, "avg_score": 1500.0}]

        monkeypatch.setattr(stats_api, "fetch_leaderboard", fake_fetch)

        response = client.get("/api/trivia/leaderboard", params={"category": "Sports", "limit": 5, "period": "week"})

        assert response.status_code == 200
        assert response.json()["leaderboard"][0]["player_name"] == "Ann"
        assert calls == [("sports", "week", 5)]

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"period": "year"}])
    def test_leaderboard_validates_query(self, client, params):
        assert client.get("/api/trivia/leaderboard", params=params).status_code == 422

    def test_leaderboard_database_failure(self, client, monkeypatch):
        async def broken(**kwargs):
            raise ConnectionError("down")

        monkeypatch.setattr(stats_api, "fetch_leaderboard", broken)
        response = client.get("/api/trivia/leaderboard")
        assert response.status_code == 500

    def test_player_stats(self, client, monkeypatch):
        async def fake_stats(name):
            return {"total_games": 4, "best_score": 2100, "avg_score": 1200.5, "wins": 2}

        monkeypatch.setattr(stats_api, "fetch_player_stats", fake_stats)
        body = client.get("/api/trivia/stats/Ann").json()
        assert body["playerName"] == "Ann"
        assert body["stats"]["wins"] == 2


class TestSystemRoutes:
    def test_health(self, client, live_runtime, monkeypatch):
        async def db_up():
            return True

        monkeypatch.setattr(system_api, "ping_db", db_up)
        monkeypatch.setattr(system_api, "is_redis_configured", lambda: False)

        body = client.get("/api/health").json()

        assert body["ok"] is True
        assert body["redis"] == "disabled"
        assert body["activeRooms"] == 1

    def test_ws_stats(self, client, live_runtime):
        body = client.get("/api/ws-stats").json()
        assert body["activeRooms"] == 1
        assert body["rooms"][0]["code"] == "GAME"
        assert "sendFailures" in body["stats"]
