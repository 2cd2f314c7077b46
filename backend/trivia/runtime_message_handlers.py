from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .runtime_errors import InvalidPayload, TriviaError
from .runtime_utils import now_ms
from .schemas.events import (
    CreateRoomMessage,
    JoinRoomMessage,
    RoomCodeMessage,
    SubmitAnswerMessage,
)

if TYPE_CHECKING:
    from .runtime import TriviaRuntime

logger = logging.getLogger(__name__)


async def handle_message(
    runtime: "TriviaRuntime",
    connection_id: str,
    data: dict[str, Any],
) -> None:
    message_type = data.get("type")

    try:
        await _dispatch(runtime, connection_id, message_type, data)
    except ValidationError as exc:
        if message_type == "submit_answer":
            logger.debug(
                "Dropped malformed submit_answer from connection %s: %s error(s)",
                connection_id,
                exc.error_count(),
            )
            return
        await runtime.send_error(
            connection_id,
            InvalidPayload(f"Invalid {message_type} payload: {exc.error_count()} error(s)"),
        )
    except TriviaError as exc:
        if exc.silent:
            logger.debug(
                "Dropped %s from connection %s: %s",
                message_type,
                connection_id,
                exc.code,
            )
            return
        await runtime.send_error(connection_id, exc)


async def _dispatch(
    runtime: "TriviaRuntime",
    connection_id: str,
    message_type: Any,
    data: dict[str, Any],
) -> None:
    if message_type == "ping":
        runtime._increment_stat("pingReceived")
        await runtime.broadcaster.send_to_connection(
            connection_id,
            {"type": "pong", "serverTime": now_ms()},
        )
        return

    if message_type == "create_room":
        create = CreateRoomMessage.model_validate(data)
        await runtime.create_room(
            connection_id,
            create.playerName,
            category=create.category,
            venue_id=create.venueId,
        )
        return

    if message_type == "join_room":
        join = JoinRoomMessage.model_validate(data)
        await runtime.join_room(connection_id, join.roomCode, join.playerName)
        return

    if message_type == "start_game":
        start = RoomCodeMessage.model_validate(data)
        await runtime.start_game(connection_id, start.roomCode)
        return

    if message_type == "submit_answer":
        answer = SubmitAnswerMessage.model_validate(data)
        await runtime.submit_answer(connection_id, answer.roomCode, answer.answerIndex, answer.timeLeft)
        return

    if message_type == "leave_room":
        leave = RoomCodeMessage.model_validate(data)
        await runtime.leave_room(connection_id, leave.roomCode)
        return

    if message_type == "join_as_display":
        display = RoomCodeMessage.model_validate(data)
        await runtime.join_as_display(connection_id, display.roomCode)
        return

    logger.debug("Ignoring unknown message type %r from %s", message_type, connection_id)
