# src/taskly/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the HTTP transport and the front-end swappable and makes testing easier.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


class RemoteApi(Protocol):
    """Single-attempt API call. Raises SessionExpired / RequestFailed / Unreachable."""

    async def request(
            self,
            endpoint: str,
            method: str = "GET",
            body: dict[str, Any] | None = None,
            token: str | None = None,
    ) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class ReminderEvent:
    """What a fired reminder tells the front-end."""

    task_id: str
    title: str
    fires_at: datetime


class ReminderSink(Protocol):
    """
    Front-end side port: how the scheduler surfaces a due reminder.

    The front-end decides how to present it (alert, notification panel, sound).
    """

    def notify(self, event: ReminderEvent) -> None: ...


class RefreshListener(Protocol):
    """Called after every task mutation, once reminders have been rebuilt."""

    def refresh(self, active: list[Any], archived: list[Any] | None = None) -> None: ...
