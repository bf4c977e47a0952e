# src/taskly/tasks/lifecycle.py

"""
Task lifecycle: Active <-> Archived, and Deleted (terminal).

    create   (none)              -> Active
    edit     Active              -> Active     (reminder recomputed)
    archive  Active              -> Archived   (archivedAt stamped)
    restore  Archived            -> Active     (archivedAt cleared)
    delete   Active | Archived   -> Deleted

Every successful mutation is followed, in this order, by:
re-reading the active set -> reminder rebuild -> refresh notification.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..core.ports import RefreshListener
from ..core.result import ErrorKind, Ok, Result, err
from ..sync.gateway import SyncGateway
from .reminder_scheduler import ReminderScheduler
from .task_models import Task, TaskDraft

logger = logging.getLogger(__name__)


class TaskLifecycleManager:
    def __init__(
        self,
        gateway: SyncGateway,
        scheduler: ReminderScheduler,
        *,
        refresh: RefreshListener | None = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler = scheduler
        self._refresh = refresh
        self._inflight: set[str] = set()

    @property
    def scheduler(self) -> ReminderScheduler:
        return self._scheduler

    # ---- queries ----

    async def list_active(self) -> Result[list[Task]]:
        return await self._gateway.list_tasks()

    async def list_archived(self) -> Result[list[Task]]:
        return await self._gateway.list_archived()

    async def search(self, query: str) -> Result[list[Task]]:
        """Active tasks whose title or description contains `query` (case-insensitive)."""
        result = await self._gateway.list_tasks()
        if not result.ok:
            return result
        q = (query or "").strip().lower()
        if not q:
            return result
        return Ok([t for t in result.payload if q in f"{t.title} {t.description}".lower()])

    # ---- mutations ----

    async def create(self, draft: TaskDraft) -> Result[Task]:
        invalid = draft.validate()
        if invalid is not None:
            return invalid
        payload = draft.to_payload()
        key = "create:" + json.dumps(payload, sort_keys=True, default=str)
        return await self._mutate(key, lambda: self._gateway.create_task(payload))

    async def edit(self, task_id: str, draft: TaskDraft) -> Result[Task]:
        invalid = draft.validate()
        if invalid is not None:
            return invalid
        if not str(task_id or "").strip():
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found")
        payload = draft.to_payload()
        return await self._mutate(f"edit:{task_id}", lambda: self._gateway.update_task(task_id, payload))

    async def archive(self, task_id: str) -> Result[Task]:
        if not str(task_id or "").strip():
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found")
        return await self._mutate(f"archive:{task_id}", lambda: self._gateway.archive_task(task_id))

    async def restore(self, task_id: str) -> Result[Task]:
        if not str(task_id or "").strip():
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found in archive")
        return await self._mutate(f"restore:{task_id}", lambda: self._gateway.restore_task(task_id))

    async def delete(self, task_id: str) -> Result[None]:
        if not str(task_id or "").strip():
            return err(ErrorKind.TASK_NOT_FOUND, "Task not found")
        return await self._mutate(f"delete:{task_id}", lambda: self._gateway.delete_task(task_id))

    async def empty_archive(self) -> Result[int]:
        """Permanently delete every archived task. Returns how many were removed."""

        async def run() -> Result[int]:
            listed = await self._gateway.list_archived()
            if not listed.ok:
                return listed
            removed = 0
            for task in listed.payload:
                res = await self._gateway.delete_task(task.id)
                if not res.ok:
                    logger.warning("empty_archive: delete failed task_id=%s error=%s", task.id, res.error)
                    if removed == 0:
                        return res
                    break
                removed += 1
            return Ok(removed)

        return await self._mutate("empty_archive", run)

    async def restore_all(self) -> Result[int]:
        """Restore archived tasks one by one (there is no bulk endpoint)."""

        async def run() -> Result[int]:
            listed = await self._gateway.list_archived()
            if not listed.ok:
                return listed
            restored = 0
            for task in listed.payload:
                res = await self._gateway.restore_task(task.id)
                if not res.ok:
                    logger.warning("restore_all: restore failed task_id=%s error=%s", task.id, res.error)
                    if restored == 0:
                        return res
                    break
                restored += 1
            return Ok(restored)

        return await self._mutate("restore_all", run)

    # ---- startup / teardown ----

    async def startup(self) -> Result[list[Task]]:
        """Load the active set and rearm reminders (no timer survives a restart)."""
        result, tasks = await self._load_active()
        self._scheduler.rebuild(self._gateway.session.owner, tasks)
        self._notify_refresh(tasks)
        return result

    def shutdown(self) -> None:
        self._scheduler.cancel_all()

    # ---- internals ----

    async def _mutate(self, key: str, call: Callable[[], Awaitable[Result[Any]]]) -> Result[Any]:
        if key in self._inflight:
            logger.info("Ignoring duplicate in-flight submission: %s", key.split(":", 1)[0])
            return err(ErrorKind.IN_FLIGHT)

        self._inflight.add(key)
        try:
            result = await call()
        finally:
            self._inflight.discard(key)

        if result.ok:
            await self._after_mutation()
        return result

    async def _load_active(self) -> tuple[Result[list[Task]], list[Task]]:
        """Gateway listing, or the local mirror when the listing fails."""
        listed = await self._gateway.list_tasks()
        if listed.ok:
            return listed, listed.payload
        mirror = self._gateway.local.list_tasks()
        if mirror.ok:
            logger.info("Active set from local mirror (listing failed: %s)", listed.error)
        return listed, mirror.payload if mirror.ok else []

    async def _after_mutation(self) -> None:
        _, tasks = await self._load_active()
        self._scheduler.rebuild(self._gateway.session.owner, tasks)
        self._notify_refresh(tasks)

    def _notify_refresh(self, tasks: list[Task]) -> None:
        if self._refresh is None:
            return
        try:
            self._refresh.refresh(tasks)
        except Exception:
            logger.exception("refresh listener failed")
