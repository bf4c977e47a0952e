# src/taskly/sync/connectivity.py

from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Last-known network state, learned from the remote calls themselves.

    - mark_offline(): a transport failure was observed
    - mark_online():  the server answered (any status)
    - is_offline():   True while forced offline, or until the recheck
                      window after the last transport failure has passed

    After the window the gateway tries the server again; a success flips the
    state back to online.
    """

    def __init__(
        self,
        *,
        recheck_after_seconds: float = 30.0,
        force_offline: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._recheck_s = max(0.0, float(recheck_after_seconds))
        self._force_offline = force_offline
        self._clock = clock
        self._retry_at: float | None = None

    def is_offline(self) -> bool:
        if self._force_offline:
            return True
        if self._retry_at is None:
            return False
        return self._clock() < self._retry_at

    def mark_offline(self) -> None:
        if self._retry_at is None:
            logger.info("Network unreachable; using local storage (recheck in %.0fs)", self._recheck_s)
        self._retry_at = self._clock() + self._recheck_s

    def mark_online(self) -> None:
        if self._retry_at is not None:
            logger.info("Network reachable again.")
        self._retry_at = None

    def set_forced_offline(self, value: bool) -> None:
        self._force_offline = bool(value)
