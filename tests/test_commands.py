# tests/test_commands.py

from __future__ import annotations

import pytest

from taskly.cli.commands import CommandRegistry, registry


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    async def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert await reg.handle(state, '/a x "y z"') == "h2:x,y z"
    assert await reg.handle(state, "/bee", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")
    assert "unbalanced" in (await reg.handle(state, '/a "oops') or "")


@pytest.mark.asyncio
async def test_console_session_end_to_end(state, fake_api) -> None:
    reply = await registry.handle(state, "/register ann@example.com secret1 secret1 Ann Lee")
    assert reply == "Registered and signed in as Ann Lee."

    reply = await registry.handle(state, '/add "Buy milk" "2 liters" 2099-05-01 09:00 high 15')
    assert reply is not None and reply.startswith("Task created: [srv-")
    assert "reminder 2099-05-01 08:45" in reply

    listing = await registry.handle(state, "/tasks")
    assert listing is not None and "Tasks (1):" in listing and "Buy milk" in listing

    task_id = fake_api.tasks["ann@example.com"][0]["id"]
    assert await registry.handle(state, f"/swipe {task_id} -40") == "Swipe cancelled."
    assert await registry.handle(state, f"/swipe {task_id} -120") == "Archived: Buy milk"
    assert "Archived (1):" in (await registry.handle(state, "/archived") or "")

    assert await registry.handle(state, "/restore all") == "Restored 1 task(s)."
    assert await registry.handle(state, f"/delete {task_id}") == "Task deleted."
    assert await registry.handle(state, "/tasks") == "Tasks: none."


@pytest.mark.asyncio
async def test_commands_surface_validation_errors(state) -> None:
    await registry.handle(state, "/register bob@example.com secret1 secret1 Bob Ray")

    reply = await registry.handle(state, '/add "" "desc" 2099-01-01 10:00 low')
    assert reply is not None and reply.startswith("Error (ValidationFailed)")

    reply = await registry.handle(state, '/add "T" "D" 01/02/2099 10:00 low')
    assert reply == "Error (ValidationFailed): Date must be YYYY-MM-DD"

    assert (await registry.handle(state, "/archive nope") or "").startswith("Error (TaskNotFound)")
    assert (await registry.handle(state, "/theme purple") or "").startswith("Error (ValidationFailed)")
    assert await registry.handle(state, "/theme dark") == "Theme set to dark."


@pytest.mark.asyncio
async def test_status_and_offline_toggle(state) -> None:
    status = await registry.handle(state, "/status")
    assert status is not None and "not signed in" in status and "ONLINE" in status

    assert (await registry.handle(state, "/offline on") or "").startswith("Offline mode ON")
    assert "OFFLINE" in (await registry.handle(state, "/status") or "")
    assert (await registry.handle(state, "/offline off") or "").startswith("Offline mode OFF")
    assert state.connectivity.is_offline() is False


@pytest.mark.asyncio
async def test_email_change_is_refused_until_the_server_supports_it(state) -> None:
    assert (await registry.handle(state, "/email new@example.com") or "").startswith("Error (NotAuthenticated)")
    await registry.handle(state, "/register bob@example.com secret1 secret1 Bob Ray")

    assert await registry.handle(state, "/email") == "Usage: /email <new-email>"
    same = await registry.handle(state, "/email BOB@example.com")
    assert same == "Error (ValidationFailed): New email is the same as current email"
    other = await registry.handle(state, "/email new@example.com")
    assert other is not None and other.startswith("Error (RequestFailed): Email change requires backend API support")
    assert state.session.owner == "bob@example.com"
