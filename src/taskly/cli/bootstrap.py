# src/taskly/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/remote/gateway/scheduler),
- restores the persisted session and rearms reminders at startup.
"""

from __future__ import annotations

import contextlib
import logging

import httpx

from ..auth.accounts import AccountService
from ..auth.user_models import Theme
from ..config import get_settings
from ..core.ports import RefreshListener, ReminderSink
from ..core.session import Session
from ..core.state import AppState
from ..remote.client import RemoteClient
from ..store.local_backend import LocalBackend
from ..store.local_store import LocalStore
from ..sync.connectivity import ConnectivityMonitor
from ..sync.gateway import SyncGateway
from ..tasks.lifecycle import TaskLifecycleManager
from ..tasks.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    sink: ReminderSink,
    refresh: RefreshListener | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and the HTTP transport are injectable so tests can run the whole
    graph against a mock server and a temporary database.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = LocalStore(settings.store_db_path)
    session = Session(store)
    default_theme = Theme.parse(settings.default_theme) or Theme.LIGHT

    remote = RemoteClient(settings.api_base_url, timeout=settings.http_timeout, transport=transport)
    connectivity = ConnectivityMonitor(
        recheck_after_seconds=settings.offline_recheck_seconds,
        force_offline=settings.force_offline,
    )
    local = LocalBackend(store, session, default_theme=default_theme)
    gateway = SyncGateway(remote, local, session, connectivity)

    scheduler = ReminderScheduler(sink, store=store)
    lifecycle = TaskLifecycleManager(gateway, scheduler, refresh=refresh)
    accounts = AccountService(
        gateway,
        lifecycle,
        min_password_length=settings.min_password_length,
        default_theme=default_theme,
    )

    # A 401 ends the session: stop every reminder that belonged to it.
    gateway.add_session_expired_listener(scheduler.cancel_all)

    logger.info(
        "State ready (api=%s offline_forced=%s db=%s)",
        settings.api_base_url,
        settings.force_offline,
        settings.store_db_path,
    )
    return AppState(
        settings=settings,
        store=store,
        session=session,
        remote=remote,
        connectivity=connectivity,
        gateway=gateway,
        scheduler=scheduler,
        lifecycle=lifecycle,
        accounts=accounts,
    )


async def start_session(state: AppState) -> bool:
    """Restore the last session (if any). Returns True when a user is signed in."""
    try:
        return await state.accounts.restore_session()
    except Exception:
        logger.exception("Failed to restore session.")
        return False


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    state.scheduler.cancel_all()

    try:
        await state.remote.aclose()
    except Exception:
        logger.debug("HTTP client close failed.", exc_info=True)

    with contextlib.suppress(Exception):
        state.store.close()
