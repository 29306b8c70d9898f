from __future__ import annotations


class GameError(Exception):
    """Expected failure with a stable machine-readable code."""

    code = "game_error"
    default_message = "Game error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_ack(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class RoomNotFound(GameError):
    code = "room_not_found"
    default_message = "Room does not exist."


class RoomFull(GameError):
    code = "room_full"
    default_message = "Room is full."


class InvalidRoom(GameError):
    code = "invalid_room"
    default_message = "Cannot start game: room is undefined."


class GameInProgress(GameError):
    code = "game_in_progress"
    default_message = "Game has already started or is finished."


class NotHost(GameError):
    code = "only_host"
    default_message = "Only the host can start the game."


class InvalidPayload(GameError):
    code = "invalid_payload"
    default_message = "Invalid payload."
