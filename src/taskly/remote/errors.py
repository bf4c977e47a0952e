# src/taskly/remote/errors.py

from __future__ import annotations


class RemoteError(Exception):
    """Base class for failures raised by RemoteClient.request()."""


class SessionExpired(RemoteError):
    """HTTP 401: the held token is no longer valid. Never retried, never masked."""

    def __init__(self, message: str = "Session expired. Please log in again.") -> None:
        super().__init__(message)


class Unreachable(RemoteError):
    """Transport-level failure: the server could not be reached at all."""


class RequestFailed(RemoteError):
    """The server answered with a non-2xx status (other than 401) or an unusable body."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"API request failed: {status}")
        self.status = status
        self.message = message
