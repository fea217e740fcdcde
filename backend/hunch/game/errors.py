from __future__ import annotations


class GameError(Exception):
    """Base class for rejected actions.

    A GameError is raised before any room state is mutated, so the room is
    left exactly as it was. ``code`` is a stable machine-readable identifier
    sent to the client next to the human-readable message.
    """

    code = "game_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(GameError):
    code = "invalid_payload"


class InvalidTargetError(ValidationError):
    code = "invalid_target"


class NotFoundError(GameError):
    code = "not_found"


class StateError(GameError):
    code = "invalid_state"


class AuthorizationError(GameError):
    code = "not_allowed"


class CapacityError(GameError):
    code = "room_full"


class ConfirmationRequiredError(GameError):
    code = "confirmation_required"
