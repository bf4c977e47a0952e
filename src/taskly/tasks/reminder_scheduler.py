# src/taskly/tasks/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

One asyncio one-shot timer per task, indexed by task id. The whole timer set
is cancelled and rebuilt from the active task list on every change (and at
startup), so a timer can never outlive the task data it was derived from.

- armed only when fires_at is in the future; past-due reminders are dropped
- firing removes the timer from the armed set and notifies the sink
- nothing survives a restart as a live timer; startup simply rebuilds
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.ports import ReminderEvent, ReminderSink
from ..store.local_store import LocalStore, Purpose
from .task_models import Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ReminderEntry:
    """Derived from a task; never edited on its own."""

    task_id: str
    title: str
    fires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "title": self.title,
            "firesAt": int(round(self.fires_at.timestamp() * 1000)),
        }


def derive_entries(tasks: Iterable[Task]) -> list[ReminderEntry]:
    out: list[ReminderEntry] = []
    for task in tasks:
        if task.archived or task.reminder is None:
            continue
        out.append(ReminderEntry(task_id=task.id, title=task.title, fires_at=task.reminder.fires_at))
    return out


class ReminderScheduler:
    def __init__(
        self,
        sink: ReminderSink,
        *,
        store: LocalStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sink = sink
        self._store = store
        self._clock = clock
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def armed_count(self) -> int:
        return len(self._timers)

    def armed_task_ids(self) -> set[str]:
        return set(self._timers)

    def rebuild(self, owner: str | None, tasks: Iterable[Task]) -> int:
        """
        Cancel every outstanding timer and arm anew from `tasks` (the active set).

        Must be called from inside the running event loop. Returns the number
        of armed timers.
        """
        self.cancel_all()
        entries = derive_entries(tasks)

        if self._store is not None and owner:
            self._store.set(Purpose.REMINDERS, owner, [e.to_dict() for e in entries])

        loop = asyncio.get_running_loop()
        now_ts = self._clock()
        dropped = 0

        for entry in entries:
            delay = entry.fires_at.timestamp() - now_ts
            if delay <= 0:
                dropped += 1
                continue
            self._timers[entry.task_id] = loop.call_later(delay, self._fire, entry)

        logger.info("Reminders rebuilt owner=%s armed=%s past_due=%s", owner, len(self._timers), dropped)
        return len(self._timers)

    def cancel_all(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def entries(self, owner: str | None) -> list[dict[str, Any]]:
        """Persisted reminder list for the notification panel (newest fire time first)."""
        if self._store is None or not owner:
            return []
        items = [e for e in self._store.get_list(Purpose.REMINDERS, owner) if isinstance(e, dict)]
        return sorted(items, key=lambda e: e.get("firesAt") or 0, reverse=True)

    def _fire(self, entry: ReminderEntry) -> None:
        self._timers.pop(entry.task_id, None)
        logger.info("Reminder fired task_id=%s", entry.task_id)
        try:
            self._sink.notify(ReminderEvent(task_id=entry.task_id, title=entry.title, fires_at=entry.fires_at))
        except Exception:
            logger.exception("reminder sink failed task_id=%s", entry.task_id)
