from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from .runtime_constants import ANSWER_TIMED_OUT, NETWORK_BUFFER_S, QUESTION_TIME_LIMIT_S
from .runtime_errors import DuplicateAnswer, StaleAnswer
from .runtime_state_builders import build_question_payload, build_scores_update
from .runtime_timers import ADVANCE_TIMER, QUESTION_TIMEOUT_TIMER
from .runtime_utils import calculate_points, clamp_time_left, now_ms

if TYPE_CHECKING:
    from .runtime import TriviaRuntime
    from .runtime_types import Player, Room

ResolveReason = Literal["all-answered", "timeout"]


def all_players_answered(room: "Room") -> bool:
    return bool(room.players) and all(player.current_answer is not None for player in room.players)


async def dispatch_question(runtime: "TriviaRuntime", room: "Room") -> None:
    payload = build_question_payload(room)
    if payload is None:
        return

    for player in room.players:
        player.reset_answer()
    room.question_started_at = now_ms()

    await runtime.broadcaster.send_to_room(room.code, payload)
    runtime.scheduler.after(
        room,
        QUESTION_TIMEOUT_TIMER,
        runtime.timings.question_timeout_ms,
        runtime._on_question_timeout,
        room.current_question_index,
    )
    runtime._log_ws_event(
        "question_dispatched",
        roomCode=room.code,
        questionNumber=payload["questionNumber"],
        totalQuestions=payload["totalQuestions"],
    )


async def submit_answer(
    runtime: "TriviaRuntime",
    room: "Room",
    player: "Player",
    answer_index: int,
    time_left: Any,
) -> int:
    question = room.current_question
    if question is None or not room.question_active or room.question_started_at is None:
        raise StaleAnswer()
    if player.current_answer is not None:
        raise DuplicateAnswer()

    elapsed_ms = max(0, now_ms() - room.question_started_at)
    server_remaining_s = max(0.0, QUESTION_TIME_LIMIT_S + NETWORK_BUFFER_S - elapsed_ms / 1000)
    time_left_s = min(clamp_time_left(time_left), server_remaining_s)

    is_correct = answer_index == question.correct_index
    points = calculate_points(is_correct, time_left_s)
    player.score += points
    player.current_answer = answer_index
    player.answer_time_ms = elapsed_ms

    await runtime.broadcaster.send_to_connection(
        player.connection_id,
        {
            "type": "answer_result",
            "correct": is_correct,
            "correctAnswer": question.correct_index,
            "points": points,
            "newScore": player.score,
        },
    )
    await runtime.broadcaster.send_to_room(
        room.code,
        {
            "type": "player_answered",
            "playerName": player.name,
            "playerId": player.connection_id,
        },
    )

    if all_players_answered(room):
        await resolve_question(runtime, room, reason="all-answered")

    return points


async def resolve_question(runtime: "TriviaRuntime", room: "Room", *, reason: ResolveReason) -> bool:
    """Reveal the scoreboard for the current question and arm the advance.

    Only the first caller for a given question index gets through, so the
    all-answered path and the timeout path can never both advance.
    """
    question = room.current_question
    index = room.current_question_index
    if question is None or room.resolved_question_index == index:
        return False

    room.resolved_question_index = index
    runtime.scheduler.cancel(room, QUESTION_TIMEOUT_TIMER)

    await runtime.broadcaster.send_to_room(room.code, build_scores_update(room, question.correct_index))

    delay_ms = (
        runtime.timings.all_answered_advance_ms
        if reason == "all-answered"
        else runtime.timings.timeout_advance_ms
    )
    runtime.scheduler.after(room, ADVANCE_TIMER, delay_ms, runtime._advance_question, index)
    runtime._log_ws_event(
        "question_resolved",
        roomCode=room.code,
        questionNumber=index + 1,
        reason=reason,
    )
    return True


async def handle_question_timeout(runtime: "TriviaRuntime", room: "Room", question_index: int) -> None:
    if room.current_question_index != question_index or not room.question_active:
        return

    for player in room.players:
        if player.current_answer is None:
            player.current_answer = ANSWER_TIMED_OUT

    await resolve_question(runtime, room, reason="timeout")


async def advance_question(runtime: "TriviaRuntime", room: "Room", question_index: int) -> None:
    if room.phase != "in-progress":
        return
    if room.current_question_index != question_index or room.resolved_question_index != question_index:
        return

    room.current_question_index += 1
    room.question_started_at = None
    for player in room.players:
        player.reset_answer()

    if room.current_question_index < len(room.questions):
        await dispatch_question(runtime, room)
        return

    await runtime._end_game(room)
