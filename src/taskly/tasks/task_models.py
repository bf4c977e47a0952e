# src/taskly/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from ..core.result import Err, ErrorKind, err
from ..core.validation import parse_date, parse_time, require_fields


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: str | None) -> Priority | None:
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None

    @classmethod
    def from_wire(cls, raw: str | None) -> Priority:
        return cls.parse(raw) or cls.MEDIUM


class TaskState(StrEnum):
    """
    Task lifecycle state.

    DELETED is terminal and never stored: a deleted task simply disappears
    from both collections.
    """

    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


def combine(date_s: str, time_s: str) -> datetime | None:
    """Local due datetime for a task's calendar date + time of day."""
    d = parse_date(date_s)
    t = parse_time(time_s)
    if d is None or t is None:
        return None
    return datetime.combine(d, t)


def _ms_to_dt(ms: Any) -> datetime | None:
    try:
        return datetime.fromtimestamp(float(ms) / 1000.0)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


@dataclass(frozen=True, slots=True)
class Reminder:
    fires_at: datetime  # local, naive
    offset_minutes: int

    @property
    def fires_at_ms(self) -> int:
        return int(round(self.fires_at.timestamp() * 1000))

    def to_dict(self) -> dict[str, Any]:
        return {"firesAt": self.fires_at_ms, "offsetMinutes": self.offset_minutes}


def compute_reminder(date_s: str, time_s: str, offset_minutes: int | None) -> Reminder | None:
    if offset_minutes is None:
        return None
    due = combine(date_s, time_s)
    if due is None:
        return None
    return Reminder(fires_at=due - timedelta(minutes=int(offset_minutes)), offset_minutes=int(offset_minutes))


def _reminder_from_wire(raw: Any, date_s: str, time_s: str) -> Reminder | None:
    if not isinstance(raw, dict):
        return None

    offset = raw.get("offsetMinutes", raw.get("offsetMin"))
    if offset is not None:
        try:
            derived = compute_reminder(date_s, time_s, int(offset))
        except (TypeError, ValueError):
            derived = None
        if derived is not None:
            return derived

    fires_at = _ms_to_dt(raw.get("firesAt", raw.get("reminderAt")))
    if fires_at is None:
        return None
    try:
        offset_i = int(offset) if offset is not None else 0
    except (TypeError, ValueError):
        offset_i = 0
    return Reminder(fires_at=fires_at, offset_minutes=offset_i)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str
    date: str
    time: str
    priority: Priority
    reminder: Reminder | None = None
    archived: bool = False
    archived_at: str | None = None
    created_at: str | None = None

    @property
    def state(self) -> TaskState:
        return TaskState.ARCHIVED if self.archived else TaskState.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "time": self.time,
            "priority": self.priority.value,
            "reminder": self.reminder.to_dict() if self.reminder else None,
            "archived": self.archived,
            "archivedAt": self.archived_at,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        """Accepts both the local camelCase shape and the server's snake_case aliases."""
        date_s = str(raw.get("date") or "")
        time_s = str(raw.get("time") or "")
        archived_at = raw.get("archivedAt", raw.get("archived_at"))
        return cls(
            id=str(raw.get("id", raw.get("_id", ""))),
            title=str(raw.get("title") or ""),
            description=str(raw.get("description", raw.get("desc")) or ""),
            date=date_s,
            time=time_s,
            priority=Priority.from_wire(raw.get("priority")),
            reminder=_reminder_from_wire(raw.get("reminder"), date_s, time_s),
            archived=bool(raw.get("archived") or archived_at),
            archived_at=archived_at,
            created_at=raw.get("createdAt", raw.get("created_at")),
        )

    def archived_copy(self, archived_at: str) -> Task:
        return replace(self, archived=True, archived_at=archived_at)

    def restored_copy(self) -> Task:
        return replace(self, archived=False, archived_at=None)


@dataclass(slots=True)
class TaskDraft:
    """User input for create/edit, before it has an id."""

    title: str
    description: str
    date: str
    time: str
    priority: str
    reminder_offset_minutes: int | None = None

    def validate(self) -> Err | None:
        missing = require_fields(
            title=self.title,
            description=self.description,
            date=self.date,
            time=self.time,
            priority=self.priority,
        )
        if missing is not None:
            return missing
        if parse_date(self.date) is None:
            return err(ErrorKind.VALIDATION_FAILED, "Date must be YYYY-MM-DD")
        if parse_time(self.time) is None:
            return err(ErrorKind.VALIDATION_FAILED, "Time must be HH:MM")
        if Priority.parse(self.priority) is None:
            return err(ErrorKind.VALIDATION_FAILED, "Priority must be one of: low, medium, high")
        if self.reminder_offset_minutes is not None and self.reminder_offset_minutes < 0:
            return err(ErrorKind.VALIDATION_FAILED, "Reminder offset must be zero or more minutes")
        return None

    def reminder(self) -> Reminder | None:
        return compute_reminder(self.date, self.time, self.reminder_offset_minutes)

    def to_payload(self) -> dict[str, Any]:
        """Request body for POST/PUT /tasks; also what the local path stores."""
        reminder = self.reminder()
        return {
            "title": self.title.strip(),
            "description": self.description.strip(),
            "date": self.date.strip(),
            "time": self.time.strip(),
            "priority": Priority.from_wire(self.priority).value,
            "reminder": reminder.to_dict() if reminder else None,
        }
