"""Domain error types shared by every service.

Services raise these; the HTTP layer maps ``kind`` to a status code. Callers
branch on ``kind``/``code`` only, never on the message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    CONFLICT = "CONFLICT"


class DomainError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"


class NotFound(DomainError):
    """Entity is absent or owned by someone else (deliberately indistinguishable)."""

    kind = ErrorKind.NOT_FOUND


class InvalidInput(DomainError):
    kind = ErrorKind.INVALID_INPUT


class Conflict(DomainError):
    """Structural constraint violated: has children, in use, depth, ..."""

    kind = ErrorKind.CONFLICT
