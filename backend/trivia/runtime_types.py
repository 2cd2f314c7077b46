from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal

QuestionDifficulty = Literal["easy", "medium", "hard"]
Phase = Literal["lobby", "in-progress", "ended"]


@dataclass(frozen=True)
class Question:
    text: str
    options: tuple[str, ...]
    correct_index: int
    difficulty: QuestionDifficulty = "medium"


@dataclass
class Player:
    connection_id: str
    name: str
    score: int = 0
    # None until answered; ANSWER_TIMED_OUT when the question expired first.
    current_answer: int | None = None
    answer_time_ms: int | None = None
    joined_at: int = 0

    def reset_answer(self) -> None:
        self.current_answer = None
        self.answer_time_ms = None


@dataclass
class Room:
    code: str
    host_connection_id: str
    category: str
    created_at: int
    venue_id: str | None = None
    players: list[Player] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    displays: set[str] = field(default_factory=set)
    phase: Phase = "lobby"
    current_question_index: int = 0
    question_started_at: int | None = None
    resolved_question_index: int = -1
    ended_at: int | None = None
    timers: dict[str, asyncio.Task[None] | None] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def started(self) -> bool:
        return self.phase != "lobby"

    @property
    def host(self) -> Player | None:
        return self.get_player(self.host_connection_id)

    @property
    def host_name(self) -> str | None:
        host = self.host
        return host.name if host else None

    def get_player(self, connection_id: str) -> Player | None:
        return next((p for p in self.players if p.connection_id == connection_id), None)

    def has_name(self, name: str) -> bool:
        return any(p.name == name for p in self.players)

    @property
    def current_question(self) -> Question | None:
        if self.phase != "in-progress":
            return None
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def question_active(self) -> bool:
        return (
            self.current_question is not None
            and self.question_started_at is not None
            and self.resolved_question_index != self.current_question_index
        )
