from __future__ import annotations


class TriviaError(Exception):
    """Base class for failures reported to a single connection."""

    code = "TRIVIA_ERROR"
    message = "Request could not be processed"
    # Silent errors are expected races; they are logged and never sent.
    silent = False

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        return {"type": "error", "code": self.code, "message": self.message}


class RoomNotFound(TriviaError):
    code = "ROOM_NOT_FOUND"
    message = "Room not found"


class GameAlreadyStarted(TriviaError):
    code = "GAME_ALREADY_STARTED"
    message = "Game already started"


class NameTaken(TriviaError):
    code = "NAME_TAKEN"
    message = "Name already taken in this room"


class NotHost(TriviaError):
    code = "NOT_HOST"
    message = "Only host can start game"


class NoPlayers(TriviaError):
    code = "NO_PLAYERS"
    message = "Need at least 1 player"


class RoomFull(TriviaError):
    code = "ROOM_FULL"
    message = "Room is full"


class AlreadyInRoom(TriviaError):
    code = "ALREADY_IN_ROOM"
    message = "Already in this room"


class UnknownCategory(TriviaError):
    code = "UNKNOWN_CATEGORY"
    message = "Unknown question category"


class InvalidPayload(TriviaError):
    code = "INVALID_PAYLOAD"
    message = "Invalid message payload"


class RoomCodeUnavailable(TriviaError):
    code = "ROOM_CODE_UNAVAILABLE"
    message = "Failed to allocate room code"


class DuplicateAnswer(TriviaError):
    code = "DUPLICATE_ANSWER"
    message = "Answer already recorded for this question"
    silent = True


class StaleAnswer(TriviaError):
    code = "STALE_ANSWER"
    message = "No question is accepting answers"
    silent = True
