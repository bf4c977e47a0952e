# src/taskly/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..auth.accounts import AccountService
from ..remote.client import RemoteClient
from ..store.local_store import LocalStore
from ..sync.connectivity import ConnectivityMonitor
from ..sync.gateway import SyncGateway
from ..tasks.lifecycle import TaskLifecycleManager
from ..tasks.reminder_scheduler import ReminderScheduler
from .session import Session


@dataclass
class AppState:
    # Settings are kept on the state so connectors and commands can read them.
    settings: Any

    store: LocalStore
    session: Session
    remote: RemoteClient
    connectivity: ConnectivityMonitor
    gateway: SyncGateway
    scheduler: ReminderScheduler
    lifecycle: TaskLifecycleManager
    accounts: AccountService
