# tests/fakes.py

from __future__ import annotations

import asyncio
import json
import sqlite3
from dataclasses import dataclass, field
from typing import Any

import httpx

from taskly.core.ports import ReminderEvent
from taskly.store.local_store import LocalStore, Purpose


def _json(status: int, body: dict[str, Any]) -> httpx.Response:
    return httpx.Response(status, json=body)


class FakeTaskApi:
    """
    In-memory stand-in for the Taskly HTTP API, served through httpx.MockTransport.

    - `down = True` makes every request fail at the transport level
    - `fail_next[(METHOD, path)] = (status, body)` forces one error response
    - `calls` records (method, path) for assertions
    - every request yields to the event loop once (`latency` seconds)
    """

    def __init__(self, base_path: str = "/api") -> None:
        self.base_path = base_path.rstrip("/")
        self.down = False
        self.latency = 0.0
        self.fail_next: dict[tuple[str, str], tuple[int, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []

        self.users: dict[str, dict[str, Any]] = {}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, str] = {}
        self.tasks: dict[str, list[dict[str, Any]]] = {}
        self._seq = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def revoke_all_tokens(self) -> None:
        self.tokens.clear()

    # ---- request routing ----

    async def handler(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(self.latency)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        method = request.method.upper()
        path = request.url.path
        if path.startswith(self.base_path):
            path = path[len(self.base_path):]
        self.calls.append((method, path))

        forced = self.fail_next.pop((method, path), None)
        if forced is not None:
            return _json(*forced)

        body = json.loads(request.content) if request.content else {}

        if (method, path) == ("POST", "/register"):
            return self._register(body)
        if (method, path) == ("POST", "/login"):
            return self._login(body)

        email = self._authorize(request)
        if email is None:
            return _json(401, {"success": False, "error": "Unauthorized"})

        if path == "/profile":
            if method == "GET":
                return _json(200, {"success": True, "user": self.users[email]})
            if method == "PUT":
                self.users[email].update(body)
                return _json(200, {"success": True, "user": self.users[email]})
        if (method, path) == ("POST", "/change-password"):
            if self.passwords.get(email) != body.get("currentPassword"):
                return _json(400, {"success": False, "error": "Current password is incorrect"})
            self.passwords[email] = body["newPassword"]
            return _json(200, {"success": True, "message": "Password changed successfully"})

        if path == "/tasks":
            if method == "GET":
                return _json(200, {"success": True, "tasks": self._by_state(email, archived=False)})
            if method == "POST":
                task = {**body, "id": self._next("srv"), "archived": False, "createdAt": "2025-01-01T00:00:00Z"}
                self.tasks.setdefault(email, []).append(task)
                return _json(201, {"success": True, "task": task})
        if (method, path) == ("GET", "/tasks/archived"):
            return _json(200, {"success": True, "tasks": self._by_state(email, archived=True)})

        if path.startswith("/tasks/"):
            return self._task_route(email, method, path[len("/tasks/"):], body)

        return _json(404, {"success": False, "error": "Not found"})

    def _authorize(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])

    def _issue(self, email: str) -> httpx.Response:
        token = self._next("tok")
        self.tokens[token] = email
        return _json(200, {"success": True, "token": token, "user": self.users[email]})

    def _register(self, body: dict[str, Any]) -> httpx.Response:
        email = str(body.get("email", "")).lower()
        if email in self.users:
            return _json(400, {"success": False, "error": "User already exists"})
        self.users[email] = {
            "_id": self._next("usr"),
            "email": email,
            "firstName": body.get("firstName", ""),
            "lastName": body.get("lastName", ""),
            "bio": "",
            "theme": "light",
            "createdAt": "2025-01-01T00:00:00Z",
        }
        self.passwords[email] = body.get("password", "")
        self.tasks[email] = []
        return self._issue(email)

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        email = str(body.get("email", "")).lower()
        if email not in self.users or self.passwords.get(email) != body.get("password"):
            return _json(401, {"success": False, "error": "Invalid email or password"})
        return self._issue(email)

    def _by_state(self, email: str, *, archived: bool) -> list[dict[str, Any]]:
        return [t for t in self.tasks.get(email, []) if bool(t.get("archived")) == archived]

    def _task_route(self, email: str, method: str, rest: str, body: dict[str, Any]) -> httpx.Response:
        task_id, _, action = rest.partition("/")
        tasks = self.tasks.setdefault(email, [])
        task = next((t for t in tasks if t["id"] == task_id), None)
        if task is None:
            return _json(404, {"success": False, "error": "Task not found"})

        if method == "PUT" and not action:
            task.update({k: v for k, v in body.items() if k != "id"})
            return _json(200, {"success": True, "task": task})
        if method == "DELETE" and not action:
            tasks.remove(task)
            return _json(200, {"success": True})
        if method == "POST" and action == "archive":
            task.update(archived=True, archivedAt="2025-01-02T00:00:00Z")
            return _json(200, {"success": True, "task": task})
        if method == "POST" and action == "restore":
            task.update(archived=False, archivedAt=None)
            return _json(200, {"success": True, "task": task})
        return _json(404, {"success": False, "error": "Not found"})


@dataclass(slots=True)
class RecordingSink:
    """ReminderSink that keeps every fired event."""

    events: list[ReminderEvent] = field(default_factory=list)

    def notify(self, event: ReminderEvent) -> None:
        self.events.append(event)


@dataclass(slots=True)
class RecordingRefresh:
    """RefreshListener that keeps every refresh call (active ids only)."""

    calls: list[list[str]] = field(default_factory=list)

    def refresh(self, active: list[Any], archived: list[Any] | None = None) -> None:
        self.calls.append([t.id for t in active])


class FakeClock:
    """Settable wall clock (seconds since epoch)."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FailingKvInserts:
    """Connection wrapper that fails every kv insert for one purpose."""

    def __init__(self, conn: sqlite3.Connection, purpose: Purpose) -> None:
        self._conn = conn
        self._purpose = purpose

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        if sql.lstrip().startswith("INSERT INTO kv") and params and params[0] == self._purpose.value:
            raise sqlite3.OperationalError("disk I/O error")
        return self._conn.execute(sql, params)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._conn, name)


def fail_kv_inserts(monkeypatch: Any, store: LocalStore, purpose: Purpose) -> None:
    """Make `store` fail writes for `purpose` until monkeypatch is undone."""
    real = store._get_conn
    monkeypatch.setattr(store, "_get_conn", lambda: FailingKvInserts(real(), purpose))
