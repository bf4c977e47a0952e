# src/taskly/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime
from typing import Any

from ..cli.commands import registry as command_registry
from ..core.ports import ReminderEvent
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleReminderSink:
    """Prints due reminders straight into the console, between prompts."""

    def __init__(self, *, bell: bool = True) -> None:
        self._bell = bell
        self.fired: list[ReminderEvent] = []

    def notify(self, event: ReminderEvent) -> None:
        self.fired.append(event)
        if self._bell and sys.stdout.isatty():
            sys.stdout.write("\a")
        _print_ts(f"[REMINDER] {event.title} (at {event.fires_at.strftime('%H:%M')})")


class ConsoleRefreshListener:
    """The console has no live list view; it only tracks the latest active count."""

    def __init__(self) -> None:
        self.active_count = 0

    def refresh(self, active: list[Any], archived: list[Any] | None = None) -> None:
        self.active_count = len(active)
        logger.debug("Task list refreshed: %d active", self.active_count)


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None], prompt: str) -> None:
    """
    Read stdin lines in a daemon thread and hand them to the loop.

    input() blocks, so it must stay off the event loop or reminder timers
    would never fire. None is queued on EOF.
    """

    def reader() -> None:
        while True:
            try:
                line = input(prompt)
            except (EOFError, KeyboardInterrupt):
                loop.call_soon_threadsafe(queue.put_nowait, None)
                return
            loop.call_soon_threadsafe(queue.put_nowait, line)

    threading.Thread(target=reader, name="taskly-stdin", daemon=True).start()


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (user=%s).", state.session.owner)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    app_name = str(getattr(getattr(state, "settings", None), "app_name", "taskly"))
    if state.session.user is None:
        remembered = state.accounts.remembered_email()
        hint = f" (remembered: {remembered})" if remembered else ""
        _print_ts(f"Not signed in{hint}. Use /login or /register.")
    else:
        _print_ts(f"Signed in as {state.session.user.display_name}.")

    def emit(text: str) -> None:
        # Immediate user-visible feedback while a request is pending.
        _print_ts(text)

    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines, f"{app_name}> ")

    while True:
        raw = await lines.get()
        if raw is None:
            logger.info("Console EOF received, exiting.")
            break

        user_input = raw.strip()
        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is None:
            cmd_response = "Commands start with '/'. Use /help to list them."
        _print_ts(cmd_response)

    logger.info("Console connector finished.")
