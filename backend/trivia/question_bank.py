from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Any, cast

from .config import settings
from .runtime_constants import DEFAULT_CATEGORY, QUESTIONS_PER_GAME
from .runtime_errors import UnknownCategory
from .runtime_types import Question, QuestionDifficulty

DIFFICULTY_LEVELS: tuple[QuestionDifficulty, QuestionDifficulty, QuestionDifficulty] = (
    "easy",
    "medium",
    "hard",
)
OPTIONS_PER_QUESTION = 4
QUESTION_BANK_PATH = Path(__file__).resolve().parent / "data" / "question_bank.json"


def _sanitize_question_entry(raw: Any) -> Question | None:
    if not isinstance(raw, dict):
        return None

    text = str(raw.get("text") or "").strip()
    options_raw = raw.get("options")
    if not text or not isinstance(options_raw, list):
        return None

    options = [str(option).strip() for option in options_raw if str(option).strip()]
    if len(options) != OPTIONS_PER_QUESTION:
        return None

    try:
        correct_index = int(raw.get("correctIndex", 0) or 0)
    except (TypeError, ValueError):
        return None

    if correct_index < 0 or correct_index >= len(options):
        return None

    difficulty_raw = str(raw.get("difficulty") or "").strip().lower()
    difficulty = difficulty_raw if difficulty_raw in DIFFICULTY_LEVELS else "medium"

    return Question(
        text=text[:300],
        options=tuple(options),
        correct_index=correct_index,
        difficulty=cast(QuestionDifficulty, difficulty),
    )


def load_question_bank(path: Path | str) -> dict[str, tuple[Question, ...]]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    categories_raw = payload.get("categories") if isinstance(payload, dict) else None
    if not isinstance(categories_raw, dict):
        raise RuntimeError(f"{path} must contain a 'categories' object")

    bank: dict[str, tuple[Question, ...]] = {}
    for name_raw, entries_raw in categories_raw.items():
        if not isinstance(name_raw, str) or not isinstance(entries_raw, list):
            continue
        name = name_raw.strip().lower()[:40]
        if not name:
            continue
        entries = tuple(entry for entry in (_sanitize_question_entry(item) for item in entries_raw) if entry)
        if entries:
            bank[name] = entries

    if not bank:
        raise RuntimeError(f"No valid questions were loaded from {path}")

    return bank


QUESTION_BANK: dict[str, tuple[Question, ...]] = load_question_bank(
    settings.question_bank_path or QUESTION_BANK_PATH
)
SUPPORTED_CATEGORIES: tuple[str, ...] = tuple(QUESTION_BANK.keys())


def normalize_category(value: Any) -> str:
    raw = str(value or "").strip().lower()
    if not raw:
        if DEFAULT_CATEGORY in QUESTION_BANK:
            return DEFAULT_CATEGORY
        return SUPPORTED_CATEGORIES[0]
    if raw not in QUESTION_BANK:
        raise UnknownCategory(f"Unknown question category: {raw[:40]}")
    return raw


def get_category(name: str) -> list[Question]:
    try:
        return list(QUESTION_BANK[name])
    except KeyError:
        raise UnknownCategory(f"Unknown question category: {name[:40]}") from None


def draw_questions(
    category: str,
    count: int = QUESTIONS_PER_GAME,
    rng: random.Random | None = None,
) -> list[Question]:
    pool = get_category(category)
    picker = rng or random
    return picker.sample(pool, k=min(max(0, count), len(pool)))
