# src/taskly/store/local_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

from ..core.validation import normalize_email

logger = logging.getLogger(__name__)

GLOBAL_OWNER = ""


class Purpose(StrEnum):
    """What a stored value is for. Together with the owner email it forms the key."""

    AUTH_TOKEN = "auth_token"
    CURRENT_USER = "current_user"
    TASKS = "tasks"
    ARCHIVE = "archive"
    REMINDERS = "reminders"
    PROFILE_IMAGE = "profile_image"
    THEME = "theme"
    REMEMBERED_EMAIL = "remembered_email"
    TUTORIAL_SEEN = "tutorial_seen"


class LocalStore:
    """
    SQLite key-value store keyed by (purpose, owner) plus a user directory.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Reads of absent keys return the caller's default instead of failing.
    Every write commits before returning, so a following read observes it.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskly.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            users = self.count_users()
        except sqlite3.Error:
            users = -1
        logger.info("LocalStore ready db=%s users=%s", self._db_path, users)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    purpose TEXT NOT NULL,
                    owner TEXT NOT NULL DEFAULT '',
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (purpose, owner)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    email TEXT PRIMARY KEY,
                    password_hash TEXT,
                    profile TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(users)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE users ADD COLUMN {name} {decl}")
                logger.info("LocalStore migration: added users column %s", name)

            add_col("password_hash", "TEXT")
            add_col("profile", "TEXT NOT NULL DEFAULT '{}'")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _dump(value: Any) -> str:
        return json.dumps(value, ensure_ascii=False)

    @staticmethod
    def _load(raw: str | None, default: Any) -> Any:
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Corrupted JSON value in local store; using default.")
            return default

    @staticmethod
    def _owner(owner: str | None) -> str:
        return normalize_email(owner) if owner else GLOBAL_OWNER

    # ---- key-value API ----

    def get(self, purpose: Purpose, owner: str | None = None, default: Any = None) -> Any:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT value FROM kv WHERE purpose = ? AND owner = ?",
                (purpose.value, self._owner(owner)),
            ).fetchone()
            return self._load(row["value"], default) if row else default
        finally:
            conn.close()

    def get_list(self, purpose: Purpose, owner: str | None = None) -> list[Any]:
        val = self.get(purpose, owner, default=[])
        return val if isinstance(val, list) else []

    def set(self, purpose: Purpose, owner: str | None, value: Any) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(purpose, owner, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(purpose, owner)
                    DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (purpose.value, self._owner(owner), self._dump(value), time.time()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("LocalStore set purpose=%s owner=%s", purpose.value, self._owner(owner) or "<global>")

    def set_many(self, items: Mapping[tuple[Purpose, str | None], Any]) -> None:
        """Write several keys in one transaction: either all of them land or none does."""
        now = time.time()
        rows = [
            (purpose.value, self._owner(owner), self._dump(value), now)
            for (purpose, owner), value in items.items()
        ]
        conn = self._get_conn()
        try:
            for row in rows:
                conn.execute(
                    """
                    INSERT INTO kv(purpose, owner, value, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(purpose, owner)
                        DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    row,
                )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.debug("LocalStore set_many count=%s", len(rows))

    def delete(self, purpose: Purpose, owner: str | None = None) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM kv WHERE purpose = ? AND owner = ?",
                (purpose.value, self._owner(owner)),
            )
            conn.commit()
        finally:
            conn.close()

    # ---- user directory ----

    def count_users(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM users").fetchone()
            return int(n)
        finally:
            conn.close()

    def _row_to_user(self, row: sqlite3.Row) -> dict[str, Any]:
        profile = self._load(row["profile"], {})
        if not isinstance(profile, dict):
            profile = {}
        profile["email"] = row["email"]
        profile["passwordHash"] = row["password_hash"]
        return profile

    def save_user(self, user: dict[str, Any], password_hash: str | None) -> None:
        """Insert or replace a directory entry. The email is the (lowercased) primary key."""
        email = normalize_email(user.get("email"))
        if not email:
            raise ValueError("email is required")

        profile = {k: v for k, v in user.items() if k not in ("email", "passwordHash", "password")}
        now = time.time()

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO users(email, password_hash, profile, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET
                    password_hash = COALESCE(excluded.password_hash, users.password_hash),
                    profile = excluded.profile,
                    updated_at = excluded.updated_at
                """,
                (email, password_hash, self._dump(profile), now, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("User saved email=%s", email)

    def find_user_by_email(self, email: str | None) -> dict[str, Any] | None:
        key = normalize_email(email)
        if not key:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (key,)).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def update_user(self, email: str | None, partial: dict[str, Any]) -> dict[str, Any] | None:
        """Merge `partial` into the stored profile. Returns the merged record, or None if unknown."""
        existing = self.find_user_by_email(email)
        if existing is None:
            return None

        pw_hash = existing.pop("passwordHash", None)
        merged = {**existing, **{k: v for k, v in partial.items() if k not in ("passwordHash", "password")}}
        merged["email"] = existing["email"]
        self.save_user(merged, pw_hash)
        merged["passwordHash"] = pw_hash
        return merged

    def set_password_hash(self, email: str | None, password_hash: str) -> bool:
        key = normalize_email(email)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE email = ?",
                (password_hash, time.time(), key),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
