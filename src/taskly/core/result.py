# src/taskly/core/result.py

"""
Uniform outcome type returned by every gateway / lifecycle operation.

Callers branch on `result.ok` (or `isinstance(result, Ok)`); transport
exceptions never cross this boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(StrEnum):
    SESSION_EXPIRED = "SessionExpired"
    UNREACHABLE = "Unreachable"
    REQUEST_FAILED = "RequestFailed"
    TASK_NOT_FOUND = "TaskNotFound"
    VALIDATION_FAILED = "ValidationFailed"
    NOT_AUTHENTICATED = "NotAuthenticated"
    USER_EXISTS = "UserExists"
    INVALID_CREDENTIALS = "InvalidCredentials"
    IN_FLIGHT = "InFlight"
    STORAGE_FAILED = "StorageFailed"


_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.SESSION_EXPIRED: "Session expired. Please log in again.",
    ErrorKind.UNREACHABLE: "Server is unreachable.",
    ErrorKind.REQUEST_FAILED: "Request failed.",
    ErrorKind.TASK_NOT_FOUND: "Task not found.",
    ErrorKind.VALIDATION_FAILED: "Invalid input.",
    ErrorKind.NOT_AUTHENTICATED: "User not logged in.",
    ErrorKind.USER_EXISTS: "User already exists.",
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password.",
    ErrorKind.IN_FLIGHT: "The same operation is already in progress.",
    ErrorKind.STORAGE_FAILED: "Local storage is unavailable.",
}


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    payload: T

    @property
    def ok(self) -> bool:
        return True

    def as_dict(self) -> dict[str, Any]:
        return {"ok": True, "payload": self.payload}


@dataclass(frozen=True, slots=True)
class Err:
    error: ErrorKind
    detail: str = ""
    status: int | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def payload(self) -> None:
        return None

    @property
    def message(self) -> str:
        """User-facing text: server/validation detail when present, else a generic line."""
        return self.detail or _DEFAULT_MESSAGES.get(self.error, "Operation failed.")

    def as_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.error.value, "detail": self.message}


Result = Ok[T] | Err


def err(kind: ErrorKind, detail: str = "", status: int | None = None) -> Err:
    return Err(error=kind, detail=detail, status=status)
