# src/taskly/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Every path lives under a local (gitignored) data directory by default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKLY"

THEMES = ("light", "dark", "blue", "green")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Remote API ----
    api_base_url: str
    # 0 means "no timeout": a stalled request waits for the transport itself.
    http_timeout_seconds: float

    # ---- Offline handling ----
    force_offline: bool
    offline_recheck_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path

    # ---- Domain tuning ----
    min_password_length: int
    default_theme: str
    swipe_threshold_px: int

    # ---- Connector flags ----
    console_enabled: bool

    @property
    def http_timeout(self) -> float | None:
        return self.http_timeout_seconds if self.http_timeout_seconds > 0 else None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskly") or "taskly"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_base_url = _env(_k("API_BASE_URL"), "http://localhost:5000/api").rstrip("/")
        http_timeout_seconds = max(0.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 0.0))

        force_offline = _env_bool(_k("FORCE_OFFLINE"), False)
        offline_recheck_seconds = max(0.0, _env_float(_k("OFFLINE_RECHECK_SECONDS"), 30.0))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskly"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "taskly.sqlite3")

        min_password_length = max(1, _env_int(_k("MIN_PASSWORD_LENGTH"), 6))

        default_theme = _env(_k("DEFAULT_THEME"), "light").strip().lower()
        if default_theme not in THEMES:
            default_theme = "light"

        swipe_threshold_px = max(1, _env_int(_k("SWIPE_THRESHOLD_PX"), 80))

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_base_url=api_base_url,
            http_timeout_seconds=http_timeout_seconds,
            force_offline=force_offline,
            offline_recheck_seconds=offline_recheck_seconds,
            data_dir=data_dir,
            store_db_path=store_db_path,
            min_password_length=min_password_length,
            default_theme=default_theme,
            swipe_threshold_px=swipe_threshold_px,
            console_enabled=console_enabled,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
