# src/taskly/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, cast

from ..core.result import Err, Result
from ..core.state import AppState
from ..tasks.gestures import SwipeAction, swipe_decision
from ..tasks.task_models import Task, TaskDraft

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Arguments are shell-split, so quoted titles keep their spaces.
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            return "Could not parse the command (unbalanced quotes?)."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _failure(result: Result[Any]) -> str:
    e = cast(Err, result)
    return f"Error ({e.error.value}): {e.message}"


def _format_task(task: Task) -> str:
    line = f"[{task.id}] {task.title} | {task.date} {task.time} | {task.priority.value}"
    if task.reminder is not None:
        line += f" | reminder {task.reminder.fires_at.strftime('%Y-%m-%d %H:%M')}"
    if task.archived and task.archived_at:
        line += f" | archived {task.archived_at}"
    if task.description:
        line += f"\n      {task.description}"
    return line


def _format_list(title: str, tasks: list[Task]) -> str:
    if not tasks:
        return f"{title}: none."
    return "\n".join([f"{title} ({len(tasks)}):"] + [f"  {_format_task(t)}" for t in tasks])


def _parse_draft(args: list[str]) -> TaskDraft | None:
    """<title> <description> <date> <time> <priority> [reminder-offset-minutes]"""
    if len(args) not in (5, 6):
        return None
    offset: int | None = None
    if len(args) == 6:
        try:
            offset = int(args[5])
        except ValueError:
            return None
    return TaskDraft(
        title=args[0],
        description=args[1],
        date=args[2],
        time=args[3],
        priority=args[4],
        reminder_offset_minutes=offset,
    )


DRAFT_USAGE = '"<title>" "<description>" <YYYY-MM-DD> <HH:MM> <low|medium|high> [reminder-offset-min]'


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    user = state.session.user
    who = f"{user.display_name} <{user.email}>" if user else "not signed in"
    mode = "OFFLINE (local storage)" if state.connectivity.is_offline() else "ONLINE"
    remote = "yes" if state.session.token else "no"
    return (
        "Status:\n"
        f"  User: {who}\n"
        f"  Network: {mode}\n"
        f"  Server session: {remote}\n"
        f"  API: {state.remote.base_url}\n"
        f"  Theme: {state.accounts.get_theme().value}\n"
        f"  Armed reminders: {state.scheduler.armed_count}"
    )


async def cmd_register(state: AppState, args: list[str]) -> str:
    """/register <email> <password> <confirm> <first-name> <last-name>"""
    if len(args) != 5:
        return "Usage: /register <email> <password> <confirm> <first-name> <last-name>"
    email, password, confirm, first, last = args
    result = await state.accounts.register(
        email=email, password=password, confirm=confirm, first_name=first, last_name=last
    )
    if not result.ok:
        return _failure(result)
    return f"Registered and signed in as {result.payload.display_name}."


async def cmd_login(state: AppState, args: list[str]) -> str:
    """
    /login <email> <password> [--remember]
    /login <password>           -> uses the remembered email
    """
    remember = "--remember" in args
    rest = [a for a in args if a != "--remember"]
    if len(rest) == 1 and state.accounts.remembered_email():
        rest = [cast(str, state.accounts.remembered_email()), rest[0]]
    if len(rest) != 2:
        return "Usage: /login <email> <password> [--remember]"

    result = await state.accounts.login(email=rest[0], password=rest[1], remember=remember)
    if not result.ok:
        return _failure(result)

    reply = f"Welcome, {result.payload.first_name or result.payload.email}!"
    if state.accounts.needs_tutorial():
        reply += " First time here? Use /help to see what you can do."
        await state.accounts.mark_tutorial_seen()
    return reply


async def cmd_logout(state: AppState, args: list[str]) -> str:
    if state.session.user is None:
        return "Not signed in."
    if args and args[0].lower() == "--forget":
        state.accounts.forget_email()
    state.accounts.logout()
    return "Logged out."


async def cmd_profile(state: AppState, args: list[str]) -> str:
    """
    /profile                                  -> show profile
    /profile <first> <last> [bio...]          -> update profile
    /profile image <url>                      -> set profile image
    """
    if args and args[0].lower() == "image":
        if len(args) != 2:
            return "Usage: /profile image <url>"
        res_img = state.accounts.set_profile_image(args[1])
        return "Profile image updated." if res_img.ok else _failure(res_img)

    if args:
        if len(args) < 2:
            return "Usage: /profile <first> <last> [bio...]"
        result = await state.accounts.update_profile(
            first_name=args[0], last_name=args[1], bio=" ".join(args[2:])
        )
        if not result.ok:
            return _failure(result)
        return f"Profile updated: {result.payload.display_name}."

    result = await state.accounts.get_profile()
    if not result.ok:
        return _failure(result)
    user = result.payload
    return (
        "Profile:\n"
        f"  Name: {user.display_name}\n"
        f"  Email: {user.email}\n"
        f"  Bio: {user.bio or '-'}\n"
        f"  Member since: {user.created_at or '-'}\n"
        f"  Image: {state.accounts.profile_image()}"
    )


async def cmd_passwd(state: AppState, args: list[str]) -> str:
    if len(args) != 3:
        return "Usage: /passwd <current> <new> <confirm>"
    result = await state.accounts.change_password(current=args[0], new=args[1], confirm=args[2])
    if not result.ok:
        return _failure(result)
    return result.payload or "Password changed."


async def cmd_email(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /email <new-email>"
    result = state.accounts.validate_new_email(args[0])
    if not result.ok:
        return _failure(result)
    return f"Email changed to {result.payload}."


async def cmd_theme(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Theme is {state.accounts.get_theme().value}. Use /theme light|dark|blue|green."
    result = await state.accounts.set_theme(args[0])
    if not result.ok:
        return _failure(result)
    return f"Theme set to {result.payload.value}."


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    result = await state.lifecycle.list_active()
    if not result.ok:
        return _failure(result)
    return _format_list("Tasks", result.payload)


async def cmd_archived(state: AppState, args: list[str]) -> str:
    result = await state.lifecycle.list_archived()
    if not result.ok:
        return _failure(result)
    return _format_list("Archived", result.payload)


async def cmd_search(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /search <text>"
    result = await state.lifecycle.search(" ".join(args))
    if not result.ok:
        return _failure(result)
    return _format_list("Matches", result.payload)


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    draft = _parse_draft(args)
    if draft is None:
        return f"Usage: /add {DRAFT_USAGE}"
    if emit:
        with contextlib.suppress(Exception):
            emit("Saving task...")
    result = await state.lifecycle.create(draft)
    if not result.ok:
        return _failure(result)
    return f"Task created: {_format_task(result.payload)}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Usage: /edit <id> {DRAFT_USAGE}"
    draft = _parse_draft(args[1:])
    if draft is None:
        return f"Usage: /edit <id> {DRAFT_USAGE}"
    result = await state.lifecycle.edit(args[0], draft)
    if not result.ok:
        return _failure(result)
    return f"Task updated: {_format_task(result.payload)}"


async def cmd_archive(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /archive <id>"
    result = await state.lifecycle.archive(args[0])
    if not result.ok:
        return _failure(result)
    return f"Archived: {result.payload.title}"


async def cmd_restore(state: AppState, args: list[str]) -> str:
    """
    /restore <id>  -> restore one archived task
    /restore all   -> restore every archived task
    """
    if len(args) != 1:
        return "Usage: /restore <id> | /restore all"
    if args[0].lower() == "all":
        res_all = await state.lifecycle.restore_all()
        return f"Restored {res_all.payload} task(s)." if res_all.ok else _failure(res_all)
    result = await state.lifecycle.restore(args[0])
    if not result.ok:
        return _failure(result)
    return f"Restored: {result.payload.title}"


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete <id>"
    result = await state.lifecycle.delete(args[0])
    if not result.ok:
        return _failure(result)
    return "Task deleted."


async def cmd_empty_archive(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "--yes":
        return "This permanently deletes every archived task. Confirm with /empty-archive --yes"
    result = await state.lifecycle.empty_archive()
    if not result.ok:
        return _failure(result)
    return f"Deleted {result.payload} archived task(s)."


async def cmd_swipe(state: AppState, args: list[str]) -> str:
    """/swipe <id> <dx>: apply a released swipe of dx pixels (negative = left)."""
    if len(args) != 2:
        return "Usage: /swipe <id> <dx-pixels>"
    try:
        dx = float(args[1])
    except ValueError:
        return "dx must be a number of pixels (negative = left)."

    action = swipe_decision(dx, state.settings.swipe_threshold_px)
    if action == SwipeAction.ARCHIVE:
        return await cmd_archive(state, args[:1])
    if action == SwipeAction.DELETE:
        return await cmd_delete(state, args[:1])
    return "Swipe cancelled."


async def cmd_reminders(state: AppState, args: list[str]) -> str:
    entries = state.scheduler.entries(state.session.owner)
    if not entries:
        return "No reminders."
    armed = state.scheduler.armed_task_ids()
    lines = [f"Reminders ({state.scheduler.armed_count} armed):"]
    for e in entries:
        when = datetime.fromtimestamp(int(e.get("firesAt") or 0) / 1000).strftime("%Y-%m-%d %H:%M")
        mark = "*" if str(e.get("taskId")) in armed else " "
        lines.append(f" {mark} {when}  {e.get('title', '')}")
    return "\n".join(lines)


async def cmd_offline(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Offline mode is {'ON' if state.connectivity.is_offline() else 'OFF'}. Use /offline on|off."
    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        state.connectivity.set_forced_offline(True)
        return "Offline mode ON. Changes go to local storage."
    if arg in ("off", "0", "false", "no"):
        state.connectivity.set_forced_offline(False)
        state.connectivity.mark_online()
        return "Offline mode OFF. The server will be tried again."
    return "Usage: /offline on | /offline off"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show user, network mode and reminder state.")
registry.register("register", cmd_register, help_text="Create an account: /register <email> <pw> <confirm> <first> <last>.")
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password> [--remember].")
registry.register("logout", cmd_logout, help_text="Sign out (add --forget to drop the remembered email).")
registry.register("profile", cmd_profile, help_text="Show or update the profile: /profile [<first> <last> [bio]].")
registry.register("passwd", cmd_passwd, help_text="Change password: /passwd <current> <new> <confirm>.")
registry.register("email", cmd_email, help_text="Change the account email: /email <new-email>.")
registry.register("theme", cmd_theme, help_text="Show or set the theme: /theme light|dark|blue|green.")
registry.register("tasks", cmd_tasks, help_text="List active tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text=f"Create a task: /add {DRAFT_USAGE}.")
registry.register("edit", cmd_edit, help_text="Edit an active task: /edit <id> <same fields as /add>.")
registry.register("archive", cmd_archive, help_text="Archive a task: /archive <id>.")
registry.register("restore", cmd_restore, help_text="Restore from the archive: /restore <id> | all.")
registry.register("delete", cmd_delete, help_text="Delete a task permanently: /delete <id>.", aliases=["rm"])
registry.register("archived", cmd_archived, help_text="List archived tasks.")
registry.register("search", cmd_search, help_text="Search active tasks by title/description.")
registry.register("empty-archive", cmd_empty_archive, help_text="Delete every archived task (needs --yes).")
registry.register("swipe", cmd_swipe, help_text="Apply a row swipe: /swipe <id> <dx> (left archives, right deletes).")
registry.register("reminders", cmd_reminders, help_text="Show scheduled reminders (* = armed).")
registry.register("offline", cmd_offline, help_text="Force offline mode: /offline on | off.")
