# src/taskly/store/local_backend.py

"""
Offline equivalents of every remote operation, executed against LocalStore.

Each method mirrors the contract of its SyncGateway counterpart and returns
the same Ok/Err shape, so a caller cannot tell which path produced a result
except by the data itself (local task ids are millisecond timestamps).

Collections are read-modify-written as a whole; last write wins.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..auth.passwords import hash_password, verify_password
from ..auth.user_models import Theme, User
from ..core.result import Err, ErrorKind, Ok, Result, err
from ..core.session import Session
from ..core.validation import normalize_email
from ..tasks.task_models import Task
from .local_store import LocalStore, Purpose

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class LocalBackend:
    def __init__(
        self,
        store: LocalStore,
        session: Session,
        *,
        default_theme: Theme = Theme.LIGHT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._session = session
        self._default_theme = default_theme
        self._clock = clock

    @property
    def store(self) -> LocalStore:
        return self._store

    # ---- helpers ----

    def _owner(self) -> str | Err:
        owner = self._session.owner
        if not owner:
            return err(ErrorKind.NOT_AUTHENTICATED)
        return owner

    def _load(self, purpose: Purpose, owner: str) -> list[Task]:
        out: list[Task] = []
        for raw in self._store.get_list(purpose, owner):
            if isinstance(raw, dict):
                out.append(Task.from_dict(raw))
        return out

    def _save(self, purpose: Purpose, owner: str, tasks: list[Task]) -> None:
        self._store.set(purpose, owner, [t.to_dict() for t in tasks])

    def _save_both(self, owner: str, active: list[Task], archive: list[Task]) -> None:
        """Write both collections in one transaction, so a task never ends up in both or neither."""
        self._store.set_many(
            {
                (Purpose.TASKS, owner): [t.to_dict() for t in active],
                (Purpose.ARCHIVE, owner): [t.to_dict() for t in archive],
            }
        )

    def _new_task_id(self, owner: str) -> str:
        taken = {t.id for t in self._load(Purpose.TASKS, owner)}
        taken |= {t.id for t in self._load(Purpose.ARCHIVE, owner)}
        ms = int(self._clock() * 1000)
        while str(ms) in taken:
            ms += 1
        return str(ms)

    @staticmethod
    def _index_of(tasks: list[Task], task_id: str) -> int:
        key = str(task_id)
        for i, t in enumerate(tasks):
            if t.id == key:
                return i
        return -1

    def init_user_data(self, email: str) -> None:
        """Make sure the per-user collections exist (idempotent)."""
        for purpose in (Purpose.TASKS, Purpose.ARCHIVE, Purpose.REMINDERS):
            if self._store.get(purpose, email) is None:
                self._store.set(purpose, email, [])

    # ---- accounts ----

    def register(self, *, email: str, password: str, first_name: str, last_name: str) -> Result[User]:
        key = normalize_email(email)
        if self._store.find_user_by_email(key) is not None:
            return err(ErrorKind.USER_EXISTS, "User already exists")

        user = User(
            email=key,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            created_at=_now_iso(),
            theme=self._default_theme,
            has_seen_tutorial=False,
            id=str(int(self._clock() * 1000)),
        )
        self._store.save_user(user.to_dict(), hash_password(password))
        self.init_user_data(key)
        self._session.begin(user, token=None)
        logger.info("Registered user locally email=%s", key)
        return Ok(user)

    def login(self, *, email: str, password: str) -> Result[User]:
        record = self._store.find_user_by_email(email)
        if record is None:
            return err(ErrorKind.INVALID_CREDENTIALS, "User not found")
        if not verify_password(password, record.get("passwordHash")):
            return err(ErrorKind.INVALID_CREDENTIALS, "Invalid password")

        user = User.from_dict(record)
        self.init_user_data(user.email)
        self._session.begin(user, token=None)
        logger.info("Logged in locally email=%s", user.email)
        return Ok(user)

    def get_profile(self) -> Result[User]:
        if self._session.user is None:
            return err(ErrorKind.NOT_AUTHENTICATED)
        return Ok(self._session.user)

    def update_profile(self, updates: dict[str, Any]) -> Result[User]:
        current = self._session.user
        if current is None:
            return err(ErrorKind.NOT_AUTHENTICATED)
        updated = current.merged(updates)
        self._session.set_user(updated)
        if self._store.update_user(updated.email, updated.to_dict()) is None:
            # Identity only known remotely so far; keep a directory entry anyway.
            self._store.save_user(updated.to_dict(), None)
        return Ok(updated)

    def change_password(self, *, current_password: str, new_password: str) -> Result[str]:
        user = self._session.user
        if user is None:
            return err(ErrorKind.NOT_AUTHENTICATED)
        record = self._store.find_user_by_email(user.email)
        if record is None or not verify_password(current_password, record.get("passwordHash")):
            return err(ErrorKind.INVALID_CREDENTIALS, "Current password is incorrect")
        self._store.set_password_hash(user.email, hash_password(new_password))
        return Ok("Password changed successfully")

    # ---- tasks ----

    def list_tasks(self) -> Result[list[Task]]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        return Ok(self._load(Purpose.TASKS, owner))

    def list_archived(self) -> Result[list[Task]]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        return Ok(self._load(Purpose.ARCHIVE, owner))

    def create_task(self, payload: dict[str, Any]) -> Result[Task]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        tasks = self._load(Purpose.TASKS, owner)
        task = Task.from_dict(
            {
                **payload,
                "id": self._new_task_id(owner),
                "createdAt": _now_iso(),
                "archived": False,
                "archivedAt": None,
            }
        )
        tasks.append(task)
        self._save(Purpose.TASKS, owner, tasks)
        logger.debug("Local task created id=%s owner=%s", task.id, owner)
        return Ok(task)

    def update_task(self, task_id: str, payload: dict[str, Any]) -> Result[Task]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        tasks = self._load(Purpose.TASKS, owner)
        idx = self._index_of(tasks, task_id)
        if idx == -1:
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found")
        current = tasks[idx]
        merged = {**current.to_dict(), **payload}
        merged.update(id=current.id, createdAt=current.created_at, archived=False, archivedAt=None)
        tasks[idx] = Task.from_dict(merged)
        self._save(Purpose.TASKS, owner, tasks)
        return Ok(tasks[idx])

    def delete_task(self, task_id: str) -> Result[None]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        for purpose in (Purpose.TASKS, Purpose.ARCHIVE):
            tasks = self._load(purpose, owner)
            idx = self._index_of(tasks, task_id)
            if idx != -1:
                tasks.pop(idx)
                self._save(purpose, owner, tasks)
                logger.debug("Local task deleted id=%s from=%s", task_id, purpose.value)
                return Ok(None)
        return err(ErrorKind.TASK_NOT_FOUND, "Task not found")

    def archive_task(self, task_id: str) -> Result[Task]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        tasks = self._load(Purpose.TASKS, owner)
        idx = self._index_of(tasks, task_id)
        if idx == -1:
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found")

        archived = tasks.pop(idx).archived_copy(_now_iso())
        trash = self._load(Purpose.ARCHIVE, owner)
        trash.append(archived)
        self._save_both(owner, tasks, trash)
        return Ok(archived)

    def restore_task(self, task_id: str) -> Result[Task]:
        owner = self._owner()
        if isinstance(owner, Err):
            return owner
        trash = self._load(Purpose.ARCHIVE, owner)
        idx = self._index_of(trash, task_id)
        if idx == -1:
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found in archive")

        restored = trash.pop(idx).restored_copy()
        tasks = self._load(Purpose.TASKS, owner)
        tasks.append(restored)
        self._save_both(owner, tasks, trash)
        return Ok(restored)

    # ---- mirror maintenance (used after successful remote calls) ----

    def mirror_user(self, user: User, password: str | None = None) -> None:
        self._store.save_user(user.to_dict(), hash_password(password) if password else None)
        self.init_user_data(user.email)

    def mirror_password(self, email: str, password: str) -> None:
        self._store.set_password_hash(email, hash_password(password))

    def mirror_collection(self, purpose: Purpose, tasks: list[Task]) -> None:
        owner = self._session.owner
        if owner:
            self._save(purpose, owner, tasks)

    def mirror_task(self, task: Task) -> None:
        """Place `task` in the collection matching its state and drop it from the other one."""
        owner = self._session.owner
        if not owner:
            return
        active = self._load(Purpose.TASKS, owner)
        trash = self._load(Purpose.ARCHIVE, owner)
        target, other = (trash, active) if task.archived else (active, trash)

        idx = self._index_of(other, task.id)
        if idx != -1:
            other.pop(idx)
        idx = self._index_of(target, task.id)
        if idx == -1:
            target.append(task)
        else:
            target[idx] = task
        self._save_both(owner, active, trash)

    def mirror_delete(self, task_id: str) -> None:
        owner = self._session.owner
        if not owner:
            return
        for purpose in (Purpose.TASKS, Purpose.ARCHIVE):
            tasks = self._load(purpose, owner)
            idx = self._index_of(tasks, task_id)
            if idx != -1:
                tasks.pop(idx)
                self._save(purpose, owner, tasks)
