# src/taskly/sync/gateway.py

"""
Sync gateway: remote first, local fallback, one result shape.

For every domain operation:
1. If the device is known to be offline, run the local equivalent directly.
2. Otherwise call the API once.
   - SessionExpired  -> clear session, notify, Err(SESSION_EXPIRED); no fallback
   - Unreachable     -> mark offline, run the local equivalent
   - RequestFailed   -> Err(REQUEST_FAILED) with the server's message
                        (404 on a task endpoint -> Err(TASK_NOT_FOUND))
3. Remote successes are mirrored into the local store so a later offline
   session sees the same identity and tasks.

SQLite failures on either path come back as Err(STORAGE_FAILED).

Server-side errors are never masked as "offline".
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

from ..auth.user_models import User
from ..core.ports import RemoteApi
from ..core.result import ErrorKind, Ok, Result, err
from ..core.session import Session
from ..remote.errors import RequestFailed, SessionExpired, Unreachable
from ..store.local_backend import LocalBackend
from ..store.local_store import Purpose
from ..tasks.task_models import Task
from .connectivity import ConnectivityMonitor

logger = logging.getLogger(__name__)

SessionExpiredCallback = Callable[[], None]


def _task_path(task_id: str, suffix: str = "") -> str:
    return f"/tasks/{quote(str(task_id), safe='')}{suffix}"


class SyncGateway:
    def __init__(
        self,
        remote: RemoteApi,
        local: LocalBackend,
        session: Session,
        connectivity: ConnectivityMonitor,
        *,
        on_session_expired: SessionExpiredCallback | None = None,
    ) -> None:
        self._remote = remote
        self._local = local
        self._session = session
        self._connectivity = connectivity
        self._expired_callbacks: list[SessionExpiredCallback] = []
        if on_session_expired is not None:
            self._expired_callbacks.append(on_session_expired)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def local(self) -> LocalBackend:
        return self._local

    def add_session_expired_listener(self, callback: SessionExpiredCallback) -> None:
        self._expired_callbacks.append(callback)

    # ---- core dispatch ----

    def _expire_session(self) -> None:
        self._session.clear()
        for cb in list(self._expired_callbacks):
            try:
                cb()
            except Exception:
                logger.exception("session-expired listener failed")

    @staticmethod
    def _run_local(op: str, local: Callable[[], Result[Any]]) -> Result[Any]:
        try:
            return local()
        except sqlite3.Error:
            logger.exception("%s: local storage failed", op)
            return err(ErrorKind.STORAGE_FAILED)

    async def _attempt(
        self,
        op: str,
        *,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        on_success: Callable[[dict[str, Any]], Result[Any]],
        local: Callable[[], Result[Any]],
        auth_required: bool = True,
        task_id: str | None = None,
    ) -> Result[Any]:
        if self._connectivity.is_offline():
            logger.debug("%s: offline, using local storage", op)
            return self._run_local(op, local)

        if auth_required and self._session.token is None and self._session.user is not None:
            # Session opened offline: the server has never issued a token for it.
            logger.debug("%s: local-only session, using local storage", op)
            return self._run_local(op, local)

        try:
            data = await self._remote.request(endpoint, method, body, token=self._session.token)
        except SessionExpired:
            self._connectivity.mark_online()
            if not auth_required:
                return err(ErrorKind.INVALID_CREDENTIALS, status=401)
            logger.warning("%s: session expired, forcing re-authentication", op)
            self._expire_session()
            return err(ErrorKind.SESSION_EXPIRED, status=401)
        except Unreachable:
            self._connectivity.mark_offline()
            logger.info("%s: server unreachable, falling back to local storage", op)
            return self._run_local(op, local)
        except RequestFailed as e:
            self._connectivity.mark_online()
            if e.status == 404 and task_id is not None:
                return err(ErrorKind.TASK_NOT_FOUND, e.message or "Task not found", e.status)
            return err(ErrorKind.REQUEST_FAILED, e.message, e.status)

        self._connectivity.mark_online()

        if not data.get("success"):
            message = data.get("error") or data.get("message") or ""
            return err(ErrorKind.REQUEST_FAILED, str(message))

        try:
            return on_success(data)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.exception("%s: unexpected response shape", op)
            return err(ErrorKind.REQUEST_FAILED, "Unexpected response from server")
        except sqlite3.Error:
            logger.exception("%s: mirroring into local storage failed", op)
            return err(ErrorKind.STORAGE_FAILED)

    # ---- accounts ----

    async def register(self, *, email: str, password: str, first_name: str, last_name: str) -> Result[User]:
        def on_success(data: dict[str, Any]) -> Result[User]:
            user = User.from_dict(data["user"])
            self._session.begin(user, data.get("token"))
            self._local.mirror_user(user, password)
            return Ok(user)

        return await self._attempt(
            "register",
            endpoint="/register",
            method="POST",
            body={"email": email, "password": password, "firstName": first_name, "lastName": last_name},
            on_success=on_success,
            local=lambda: self._local.register(
                email=email, password=password, first_name=first_name, last_name=last_name
            ),
            auth_required=False,
        )

    async def login(self, *, email: str, password: str) -> Result[User]:
        def on_success(data: dict[str, Any]) -> Result[User]:
            user = User.from_dict(data["user"])
            self._session.begin(user, data.get("token"))
            self._local.mirror_user(user, password)
            return Ok(user)

        return await self._attempt(
            "login",
            endpoint="/login",
            method="POST",
            body={"email": email, "password": password},
            on_success=on_success,
            local=lambda: self._local.login(email=email, password=password),
            auth_required=False,
        )

    def logout(self) -> None:
        self._session.clear()

    async def get_profile(self) -> Result[User]:
        def on_success(data: dict[str, Any]) -> Result[User]:
            user = User.from_dict(data["user"])
            self._session.set_user(user)
            self._local.mirror_user(user)
            return Ok(user)

        return await self._attempt(
            "get_profile",
            endpoint="/profile",
            on_success=on_success,
            local=self._local.get_profile,
        )

    async def update_profile(self, updates: dict[str, Any]) -> Result[User]:
        def on_success(data: dict[str, Any]) -> Result[User]:
            server_user = data.get("user") or {}
            current = self._session.user
            user = current.merged(server_user) if current else User.from_dict(server_user)
            self._session.set_user(user)
            self._local.mirror_user(user)
            return Ok(user)

        return await self._attempt(
            "update_profile",
            endpoint="/profile",
            method="PUT",
            body=dict(updates),
            on_success=on_success,
            local=lambda: self._local.update_profile(updates),
        )

    async def change_password(self, *, current_password: str, new_password: str) -> Result[str]:
        def on_success(data: dict[str, Any]) -> Result[str]:
            if self._session.owner:
                self._local.mirror_password(self._session.owner, new_password)
            return Ok(str(data.get("message") or "Password changed successfully"))

        return await self._attempt(
            "change_password",
            endpoint="/change-password",
            method="POST",
            body={"currentPassword": current_password, "newPassword": new_password},
            on_success=on_success,
            local=lambda: self._local.change_password(
                current_password=current_password, new_password=new_password
            ),
        )

    # ---- tasks ----

    async def list_tasks(self) -> Result[list[Task]]:
        def on_success(data: dict[str, Any]) -> Result[list[Task]]:
            tasks = [Task.from_dict(t) for t in (data.get("tasks") or [])]
            self._local.mirror_collection(Purpose.TASKS, tasks)
            return Ok(tasks)

        return await self._attempt(
            "list_tasks", endpoint="/tasks", on_success=on_success, local=self._local.list_tasks
        )

    async def list_archived(self) -> Result[list[Task]]:
        def on_success(data: dict[str, Any]) -> Result[list[Task]]:
            tasks = [_as_archived(Task.from_dict(t)) for t in (data.get("tasks") or [])]
            self._local.mirror_collection(Purpose.ARCHIVE, tasks)
            return Ok(tasks)

        return await self._attempt(
            "list_archived", endpoint="/tasks/archived", on_success=on_success, local=self._local.list_archived
        )

    async def create_task(self, payload: dict[str, Any]) -> Result[Task]:
        def on_success(data: dict[str, Any]) -> Result[Task]:
            task = Task.from_dict(data["task"])
            self._local.mirror_task(task)
            return Ok(task)

        return await self._attempt(
            "create_task",
            endpoint="/tasks",
            method="POST",
            body=payload,
            on_success=on_success,
            local=lambda: self._local.create_task(payload),
        )

    async def update_task(self, task_id: str, payload: dict[str, Any]) -> Result[Task]:
        def on_success(data: dict[str, Any]) -> Result[Task]:
            task = Task.from_dict(data["task"])
            self._local.mirror_task(task)
            return Ok(task)

        return await self._attempt(
            "update_task",
            endpoint=_task_path(task_id),
            method="PUT",
            body=payload,
            on_success=on_success,
            local=lambda: self._local.update_task(task_id, payload),
            task_id=task_id,
        )

    async def delete_task(self, task_id: str) -> Result[None]:
        def on_success(data: dict[str, Any]) -> Result[None]:
            self._local.mirror_delete(task_id)
            return Ok(None)

        return await self._attempt(
            "delete_task",
            endpoint=_task_path(task_id),
            method="DELETE",
            on_success=on_success,
            local=lambda: self._local.delete_task(task_id),
            task_id=task_id,
        )

    async def archive_task(self, task_id: str) -> Result[Task]:
        def on_success(data: dict[str, Any]) -> Result[Task]:
            task = _as_archived(Task.from_dict(data["task"]))
            self._local.mirror_task(task)
            return Ok(task)

        return await self._attempt(
            "archive_task",
            endpoint=_task_path(task_id, "/archive"),
            method="POST",
            on_success=on_success,
            local=lambda: self._local.archive_task(task_id),
            task_id=task_id,
        )

    async def restore_task(self, task_id: str) -> Result[Task]:
        def on_success(data: dict[str, Any]) -> Result[Task]:
            task = Task.from_dict(data["task"]).restored_copy()
            self._local.mirror_task(task)
            return Ok(task)

        return await self._attempt(
            "restore_task",
            endpoint=_task_path(task_id, "/restore"),
            method="POST",
            on_success=on_success,
            local=lambda: self._local.restore_task(task_id),
            task_id=task_id,
        )


def _as_archived(task: Task) -> Task:
    if task.archived and task.archived_at:
        return task
    return task.archived_copy(task.archived_at or datetime.now(UTC).isoformat())
