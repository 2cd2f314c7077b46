from __future__ import annotations

from pydantic import BaseModel, Field


class CreateRoomMessage(BaseModel):
    playerName: str = Field(default="", max_length=64)
    category: str | None = Field(default=None, max_length=40)
    venueId: str | None = Field(default=None, max_length=64)


class RoomCodeMessage(BaseModel):
    roomCode: str = Field(min_length=1, max_length=16)


class JoinRoomMessage(RoomCodeMessage):
    playerName: str = Field(default="", max_length=64)


class SubmitAnswerMessage(RoomCodeMessage):
    # Any index is recorded; ones that are not the correct option score zero.
    answerIndex: int
    timeLeft: float | None = None
