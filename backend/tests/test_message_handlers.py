"""
Inbound WebSocket messages: validation, error codes and silent drops.
"""
from __future__ import annotations

import pytest

from conftest import connect, setup_room, start_and_wait
from trivia.runtime_message_handlers import handle_message


class TestErrors:
    @pytest.mark.asyncio
    async def test_join_unknown_room(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "join_room", "roomCode": "QQQQ", "playerName": "Ann"})
        assert ws.last("error") == {"type": "error", "code": "ROOM_NOT_FOUND", "message": "Room not found"}

    @pytest.mark.asyncio
    async def test_name_taken_goes_only_to_requester(self, runtime):
        room, sockets = await setup_room(runtime, names=("A", "B"))
        ws = connect(runtime, "c1")

        await handle_message(runtime, "c1", {"type": "join_room", "roomCode": room.code, "playerName": "A"})

        assert ws.last("error")["code"] == "NAME_TAKEN"
        assert sockets["A"].last("error") is None
        assert sockets["B"].last("error") is None

    @pytest.mark.asyncio
    async def test_not_host(self, runtime):
        room, sockets = await setup_room(runtime, names=("A", "B"))
        await handle_message(runtime, "conn-B", {"type": "start_game", "roomCode": room.code})
        assert sockets["B"].last("error")["code"] == "NOT_HOST"
        assert sockets["A"].last("game_started") is None

    @pytest.mark.asyncio
    async def test_game_already_started(self, runtime):
        room, sockets = await setup_room(runtime, names=("A",))
        await handle_message(runtime, "conn-A", {"type": "start_game", "roomCode": room.code})
        await handle_message(runtime, "conn-A", {"type": "start_game", "roomCode": room.code})
        assert sockets["A"].last("error")["code"] == "GAME_ALREADY_STARTED"
        assert len(sockets["A"].all("game_started")) == 1

    @pytest.mark.asyncio
    async def test_unknown_category(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "create_room", "playerName": "Ann", "category": "opera"})
        assert ws.last("error")["code"] == "UNKNOWN_CATEGORY"
        assert runtime.active_rooms_count == 0

    @pytest.mark.asyncio
    async def test_missing_room_code_is_invalid_payload(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "join_room", "playerName": "Ann"})
        assert ws.last("error")["code"] == "INVALID_PAYLOAD"

    @pytest.mark.asyncio
    async def test_out_of_range_answer_is_scored_wrong(self, runtime):
        room, sockets = await setup_room(runtime, names=("A", "B"))
        await start_and_wait(runtime, room, sockets)

        await handle_message(
            runtime, "conn-A", {"type": "submit_answer", "roomCode": room.code, "answerIndex": 7, "timeLeft": 10}
        )
        await handle_message(
            runtime,
            "conn-A",
            {"type": "submit_answer", "roomCode": room.code, "answerIndex": room.current_question.correct_index},
        )

        result = sockets["A"].last("answer_result")
        assert result["correct"] is False
        assert result["points"] == 0
        assert len(sockets["A"].all("answer_result")) == 1
        assert room.get_player("conn-A").current_answer == 7
        assert room.get_player("conn-A").score == 0
        assert sockets["A"].last("error") is None


class TestSilentDrops:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"roomCode": "TOOLONGROOMCODE123", "answerIndex": 1},
            {"answerIndex": 1},
            {"roomCode": "ABCD", "answerIndex": "second"},
            {"roomCode": "ABCD", "answerIndex": 1, "timeLeft": "soon"},
        ],
    )
    async def test_malformed_answer_is_dropped(self, runtime, payload):
        room, sockets = await setup_room(runtime, names=("A",))
        await start_and_wait(runtime, room, sockets)
        sent_before = len(sockets["A"].sent_messages)

        await handle_message(runtime, "conn-A", {"type": "submit_answer", **payload})

        assert len(sockets["A"].sent_messages) == sent_before
        assert room.get_player("conn-A").current_answer is None

    @pytest.mark.asyncio
    async def test_answer_for_unknown_room_is_dropped(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "submit_answer", "roomCode": "NONE", "answerIndex": 1})
        assert ws.sent_messages == []

    @pytest.mark.asyncio
    async def test_answer_from_non_player_is_dropped(self, runtime):
        room, sockets = await setup_room(runtime, names=("A",))
        await start_and_wait(runtime, room, sockets)
        ws = connect(runtime, "outsider")

        await handle_message(runtime, "outsider", {"type": "submit_answer", "roomCode": room.code, "answerIndex": 0})

        assert ws.sent_messages == []
        assert sockets["A"].last("player_answered") is None

    @pytest.mark.asyncio
    async def test_unknown_message_type_is_ignored(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "dance"})
        assert ws.sent_messages == []


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_ping(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "ping"})
        assert isinstance(ws.last("pong")["serverTime"], int)
        assert runtime.get_ws_stats()["stats"]["pingReceived"] == 1

    @pytest.mark.asyncio
    async def test_create_join_leave(self, runtime):
        host = connect(runtime, "h")
        guest = connect(runtime, "g")

        await handle_message(
            runtime, "h", {"type": "create_room", "playerName": "  Host   Name ", "category": "FOOD", "venueId": "v-1"}
        )
        code = host.last("room_created")["roomCode"]
        room = runtime.registry.get_room(code)
        assert room.category == "food"
        assert room.venue_id == "v-1"
        assert room.host_name == "Host Name"

        await handle_message(runtime, "g", {"type": "join_room", "roomCode": code, "playerName": "Guest"})
        assert guest.last("room_joined")["players"][1]["name"] == "Guest"
        assert host.last("player_joined")["displayAnnouncement"] == "Guest joined!"

        await handle_message(runtime, "g", {"type": "leave_room", "roomCode": code})
        left = host.last("player_left")
        assert left["playerName"] == "Guest"
        assert left["displayAnnouncement"] == "Guest left"

    @pytest.mark.asyncio
    async def test_blank_name_defaults(self, runtime):
        ws = connect(runtime, "c1")
        await handle_message(runtime, "c1", {"type": "create_room"})
        assert ws.last("room_created")["players"][0]["name"] == "Player"

    @pytest.mark.asyncio
    async def test_join_as_display(self, runtime):
        room, _ = await setup_room(runtime, names=("A",))
        screen = connect(runtime, "screen")

        await handle_message(runtime, "screen", {"type": "join_as_display", "roomCode": room.code})

        assert screen.last("display_update")["roomCode"] == room.code
        assert "screen" in room.displays
