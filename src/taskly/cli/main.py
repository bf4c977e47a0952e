# src/taskly/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, restores the last session, then runs
the console REPL on the asyncio loop (reminder timers share that loop).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state, shutdown_state, start_session
from ..config import get_settings
from ..connectors.console_connector import ConsoleRefreshListener, ConsoleReminderSink, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_initial_state(
        settings=settings,
        sink=ConsoleReminderSink(),
        refresh=ConsoleRefreshListener(),
    )

    state.gateway.add_session_expired_listener(
        lambda: logger.warning("Session expired. Please /login again.")
    )

    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_main.set)

    try:
        await start_session(state)

        if settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state))
            stopper = asyncio.create_task(stop_main.wait())
            _done, pending = await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            for t in pending:
                t.cancel()
        else:
            logger.info("Console disabled. Reminders only. Press Ctrl+C to stop.")
            await stop_main.wait()
    finally:
        await shutdown_state(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/taskly")
    log_file = setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s... (log file %s)", getattr(settings, "app_name", "taskly"), log_file)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        pass
    logger.info("Bye.")


if __name__ == "__main__":
    main()
