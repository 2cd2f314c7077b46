from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .question_bank import draw_questions
from .runtime_constants import QUESTIONS_PER_GAME
from .runtime_errors import GameAlreadyStarted, NoPlayers, NotHost
from .runtime_state_builders import build_standings
from .runtime_timers import PRE_START_TIMER, PURGE_TIMER, QUESTION_TIMEOUT_TIMER
from .runtime_utils import now_ms

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .runtime import TriviaRuntime
    from .runtime_types import Room


async def start_game(runtime: "TriviaRuntime", room: "Room", connection_id: str) -> None:
    if room.host_connection_id != connection_id:
        raise NotHost()
    if room.started:
        raise GameAlreadyStarted()
    if not room.players:
        raise NoPlayers()

    room.questions = draw_questions(room.category, QUESTIONS_PER_GAME, runtime.rng)
    room.current_question_index = 0
    room.resolved_question_index = -1
    room.question_started_at = None
    room.phase = "in-progress"
    for player in room.players:
        player.score = 0
        player.reset_answer()

    await runtime.broadcaster.send_to_room(
        room.code,
        {
            "type": "game_started",
            "totalQuestions": len(room.questions),
            "category": room.category,
        },
    )
    runtime.scheduler.after(room, PRE_START_TIMER, runtime.timings.pre_start_ms, runtime._begin_questions)
    runtime._log_ws_event(
        "game_started",
        roomCode=room.code,
        players=len(room.players),
        totalQuestions=len(room.questions),
    )


async def begin_questions(runtime: "TriviaRuntime", room: "Room") -> None:
    if room.phase != "in-progress" or room.question_started_at is not None:
        return
    if room.current_question_index != 0 or room.resolved_question_index != -1:
        return

    if not room.questions:
        await end_game(runtime, room)
        return

    await runtime._dispatch_question(room)


async def end_game(runtime: "TriviaRuntime", room: "Room") -> None:
    if room.phase != "in-progress":
        return

    runtime.scheduler.cancel(room, QUESTION_TIMEOUT_TIMER)
    room.phase = "ended"
    room.ended_at = now_ms()
    room.question_started_at = None

    standings = build_standings(room)
    await runtime.broadcaster.send_to_room(
        room.code,
        {
            "type": "game_ended",
            "standings": [
                {"rank": row["rank"], "name": row["name"], "score": row["score"]}
                for row in standings
            ],
        },
    )

    runtime.persistence.game_completed(room, standings)
    runtime.scheduler.after(room, PURGE_TIMER, runtime.timings.purge_grace_ms, runtime._purge_room)
    logger.info("Game ended in room %s", room.code)
    runtime._log_ws_event("game_ended", roomCode=room.code, players=len(standings))


async def purge_room(runtime: "TriviaRuntime", room: "Room") -> None:
    if room.phase != "ended":
        return
    await runtime._remove_room(room, reason="purged")
