from __future__ import annotations

from dataclasses import dataclass

from .config import settings

QUESTIONS_PER_GAME = 10
QUESTION_TIME_LIMIT_S = 15
NETWORK_BUFFER_S = 1
BASE_CORRECT_POINTS = 100
TIME_BONUS_PER_SECOND = 10
ANSWER_TIMED_OUT = -1
ROOM_CODE_LENGTH = 4
ROOM_CODE_ATTEMPTS = 24
ROOM_CODE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_CATEGORY = "general"
DEFAULT_PLAYER_NAME = "Player"
MAX_PLAYER_NAME_LENGTH = 24
MAX_PLAYERS_PER_ROOM = settings.max_players_per_room


@dataclass(frozen=True)
class GameTimings:
    pre_start_ms: int = 2_000
    question_timeout_ms: int = (QUESTION_TIME_LIMIT_S + NETWORK_BUFFER_S) * 1000
    all_answered_advance_ms: int = 3_000
    timeout_advance_ms: int = 2_000
    purge_grace_ms: int = 300_000


DEFAULT_TIMINGS = GameTimings(
    pre_start_ms=settings.pre_start_delay_ms,
    question_timeout_ms=settings.question_timeout_ms,
    all_answered_advance_ms=settings.all_answered_advance_ms,
    timeout_advance_ms=settings.timeout_advance_ms,
    purge_grace_ms=settings.room_purge_grace_ms,
)
