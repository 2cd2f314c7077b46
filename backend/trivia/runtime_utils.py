from __future__ import annotations

import math
import random
import re
import time
import uuid
from typing import Any

from .runtime_constants import (
    BASE_CORRECT_POINTS,
    DEFAULT_PLAYER_NAME,
    MAX_PLAYER_NAME_LENGTH,
    QUESTION_TIME_LIMIT_S,
    ROOM_CODE_CHARS,
    ROOM_CODE_LENGTH,
    TIME_BONUS_PER_SECOND,
)


def now_ms() -> int:
    return int(time.time() * 1000)


def random_id() -> str:
    return str(uuid.uuid4())


def random_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(random.choice(ROOM_CODE_CHARS) for _ in range(max(4, length)))


def sanitize_room_code(raw: Any) -> str:
    value = str(raw or "").upper()
    filtered = "".join(ch for ch in value if ch.isalnum())
    return filtered[:8]


def sanitize_player_name(raw: Any) -> str:
    value = str(raw or "").strip()
    if not value:
        return DEFAULT_PLAYER_NAME
    cleaned = re.sub(r"\s+", " ", value)[:MAX_PLAYER_NAME_LENGTH].strip()
    return cleaned or DEFAULT_PLAYER_NAME


def clamp_time_left(value: Any, limit_s: float = QUESTION_TIME_LIMIT_S) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(seconds):
        return 0.0
    return max(0.0, min(float(limit_s), seconds))


def calculate_points(is_correct: bool, time_left_s: float) -> int:
    if not is_correct:
        return 0
    # Rounded first so 2.3 s scores 23 rather than 22 after float drift.
    bonus = math.floor(round(max(0.0, time_left_s) * TIME_BONUS_PER_SECOND, 6))
    return BASE_CORRECT_POINTS + bonus
