"""Exception classes shared by the game core and the HTTP layer."""

from __future__ import annotations


class TicTacToeError(Exception):
    """Base exception for all game server errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code used when the error reaches a route.
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidBoardSizeError(TicTacToeError):
    """Raised when a board is requested with an unsupported size."""

    def __init__(self, size: int) -> None:
        super().__init__(message=f"Unsupported board size: {size}", status_code=400)
        self.size = size


class IllegalMoveError(TicTacToeError):
    """Raised when a mark is placed out of range or on an occupied cell."""

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(message=f"Illegal move at {index}: {reason}", status_code=400)
        self.index = index


class OracleError(TicTacToeError):
    """Base class for failures of the move oracle."""


class InvalidOracleMoveError(OracleError):
    """Raised when the oracle answers with something that is not a legal move."""

    def __init__(self, reply: object) -> None:
        super().__init__(message="AI returned invalid move", status_code=400)
        self.reply = reply


class OracleUnavailableError(OracleError):
    """Raised when the oracle cannot be reached, fails or times out."""

    def __init__(self, message: str = "Failed to generate AI move") -> None:
        super().__init__(message=message, status_code=500)


class OracleConfigurationError(OracleError):
    """Raised when the oracle has no credentials to work with."""

    def __init__(self) -> None:
        super().__init__(message="Server configuration error", status_code=500)


class UserNotFoundError(TicTacToeError):
    def __init__(self, user_id: str) -> None:
        super().__init__(message="User not found", status_code=404)
        self.user_id = user_id


class UserExistsError(TicTacToeError):
    def __init__(self) -> None:
        super().__init__(
            message="User with this email or username already exists",
            status_code=409,
        )
