"""Errors raised by the game core and the quiz catalog.

Every error carries a human readable message that is safe to send back
to the connection (or HTTP client) that triggered it. None of them end
a game session.
"""


class GameError(Exception):
    """Base class for rejected client actions."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthorizationError(GameError):
    """A host-only action attempted by a player, or the reverse."""


class InvalidStateError(GameError):
    """The action is not legal in the session's current status."""


class ValidationError(GameError):
    """Malformed input: nickname, answer index, quiz reference."""


class NotFoundError(GameError):
    """A game PIN or quiz id does not resolve."""


class QuizValidationError(ValidationError):
    """A quiz document failed the structural shape checks."""
