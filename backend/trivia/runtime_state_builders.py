from __future__ import annotations

from typing import Any

from .runtime_constants import QUESTION_TIME_LIMIT_S
from .runtime_types import Player, Room


def build_player(room: Room, player: Player) -> dict[str, Any]:
    return {
        "id": player.connection_id,
        "name": player.name,
        "score": player.score,
        "isHost": player.connection_id == room.host_connection_id,
    }


def build_roster(room: Room) -> list[dict[str, Any]]:
    return [build_player(room, player) for player in room.players]


def build_scoreboard(room: Room) -> list[dict[str, Any]]:
    # sorted() is stable, so ties keep join order
    ordered = sorted(room.players, key=lambda player: player.score, reverse=True)
    return [{"name": player.name, "score": player.score} for player in ordered]


def build_standings(room: Room) -> list[dict[str, Any]]:
    ordered = sorted(room.players, key=lambda player: player.score, reverse=True)
    return [
        {
            "rank": index + 1,
            "playerId": player.connection_id,
            "name": player.name,
            "score": player.score,
        }
        for index, player in enumerate(ordered)
    ]


def build_question_payload(room: Room) -> dict[str, Any] | None:
    question = room.current_question
    if question is None:
        return None
    return {
        "type": "new_question",
        "questionNumber": room.current_question_index + 1,
        "totalQuestions": len(room.questions),
        "question": question.text,
        "answers": list(question.options),
        "timeLimit": QUESTION_TIME_LIMIT_S,
    }


def build_scores_update(room: Room, correct_index: int | None) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": "scores_update", "players": build_scoreboard(room)}
    if correct_index is not None:
        payload["correctAnswer"] = correct_index
    return payload


def build_display_snapshot(room: Room) -> dict[str, Any]:
    return {
        "type": "display_update",
        "roomCode": room.code,
        "players": [{"name": player.name, "score": player.score} for player in room.players],
        "started": room.started,
        "phase": room.phase,
        "currentQuestion": room.current_question_index,
        "totalQuestions": len(room.questions),
    }


def build_room_summary(room: Room) -> dict[str, Any]:
    return {
        "code": room.code,
        "hostName": room.host_name,
        "category": room.category,
        "playerCount": len(room.players),
        "displayCount": len(room.displays),
        "started": room.started,
        "phase": room.phase,
        "createdAt": room.created_at,
    }
