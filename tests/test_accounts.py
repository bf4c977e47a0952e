# tests/test_accounts.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from taskly.auth.user_models import Theme
from taskly.cli.bootstrap import create_initial_state, start_session
from taskly.core.result import ErrorKind
from taskly.store.local_store import Purpose
from taskly.tasks.task_models import TaskDraft

from .fakes import RecordingSink


async def _register(state, email: str = "ann@example.com"):
    return await state.accounts.register(
        email=email, password="secret1", confirm="secret1", first_name="Ann", last_name="Lee"
    )


@pytest.mark.asyncio
async def test_register_validation_runs_before_any_request(state, fake_api) -> None:
    res = await state.accounts.register(
        email="ann@example.com", password="secret1", confirm="different", first_name="Ann", last_name="Lee"
    )

    assert not res.ok and res.error == ErrorKind.VALIDATION_FAILED
    assert fake_api.calls == []


@pytest.mark.asyncio
async def test_login_remembers_email_on_request(state) -> None:
    assert (await _register(state)).ok
    state.accounts.logout()

    res = await state.accounts.login(email=" Ann@Example.com ", password="secret1", remember=True)

    assert res.ok
    assert state.accounts.remembered_email() == "ann@example.com"
    state.accounts.forget_email()
    assert state.accounts.remembered_email() is None


@pytest.mark.asyncio
async def test_restart_restores_session_and_rearms_reminders(state, settings, fake_api) -> None:
    assert (await _register(state)).ok
    due = datetime.now() + timedelta(days=2)
    draft = TaskDraft("Dentist", "checkup", due.strftime("%Y-%m-%d"), "10:00", "high", reminder_offset_minutes=60)
    assert (await state.lifecycle.create(draft)).ok
    state.scheduler.cancel_all()

    # Simulated restart: a fresh graph over the same database and server.
    restarted = create_initial_state(settings=settings, sink=RecordingSink(), transport=fake_api.transport)
    assert restarted.scheduler.armed_count == 0

    assert await start_session(restarted) is True
    assert restarted.session.owner == "ann@example.com"
    assert restarted.scheduler.armed_count == 1
    restarted.scheduler.cancel_all()


@pytest.mark.asyncio
async def test_restart_rearms_from_local_mirror_when_listing_fails(state, settings, fake_api) -> None:
    assert (await _register(state)).ok
    due = datetime.now() + timedelta(days=2)
    draft = TaskDraft("Dentist", "checkup", due.strftime("%Y-%m-%d"), "10:00", "high", reminder_offset_minutes=60)
    assert (await state.lifecycle.create(draft)).ok
    state.scheduler.cancel_all()

    restarted = create_initial_state(settings=settings, sink=RecordingSink(), transport=fake_api.transport)
    fake_api.fail_next[("GET", "/tasks")] = (503, {"success": False, "error": "Service unavailable"})

    assert await start_session(restarted) is True
    assert restarted.scheduler.armed_count == 1
    assert len(restarted.store.get_list(Purpose.REMINDERS, "ann@example.com")) == 1
    assert len(restarted.store.get_list(Purpose.TASKS, "ann@example.com")) == 1
    restarted.scheduler.cancel_all()


@pytest.mark.asyncio
async def test_restart_with_revoked_token_ends_signed_out(state, settings, fake_api) -> None:
    assert (await _register(state)).ok
    fake_api.revoke_all_tokens()

    restarted = create_initial_state(settings=settings, sink=RecordingSink(), transport=fake_api.transport)

    assert await start_session(restarted) is False
    assert restarted.session.user is None
    assert restarted.store.get(Purpose.AUTH_TOKEN) is None


@pytest.mark.asyncio
async def test_theme_is_saved_globally_and_on_the_profile(state, fake_api) -> None:
    assert state.accounts.get_theme() is Theme.LIGHT
    assert (await _register(state)).ok

    res = await state.accounts.set_theme("Dark")

    assert res.ok and res.payload is Theme.DARK
    assert state.store.get(Purpose.THEME) == "dark"
    assert fake_api.users["ann@example.com"]["theme"] == "dark"
    assert state.accounts.get_theme() is Theme.DARK


@pytest.mark.asyncio
async def test_theme_change_offline_updates_local_profile(state, fake_api) -> None:
    assert (await _register(state)).ok
    fake_api.down = True

    res = await state.accounts.set_theme("green")

    assert res.ok
    assert state.session.user is not None and state.session.user.theme is Theme.GREEN
    assert state.store.find_user_by_email("ann@example.com")["theme"] == "green"


@pytest.mark.asyncio
async def test_tutorial_is_shown_once(state) -> None:
    assert (await _register(state)).ok
    assert state.accounts.needs_tutorial() is True

    await state.accounts.mark_tutorial_seen()

    assert state.accounts.needs_tutorial() is False
    assert state.session.user is not None and state.session.user.has_seen_tutorial


@pytest.mark.asyncio
async def test_profile_update_requires_names(state) -> None:
    assert (await _register(state)).ok

    res = await state.accounts.update_profile(first_name="  ", last_name="Lee")
    assert not res.ok and res.error == ErrorKind.VALIDATION_FAILED

    ok = await state.accounts.update_profile(first_name="Annie", last_name="Lee", bio="  runner ")
    assert ok.ok and ok.payload.bio == "runner"


@pytest.mark.asyncio
async def test_change_password_checks_confirmation(state) -> None:
    assert (await _register(state)).ok

    mismatch = await state.accounts.change_password(current="secret1", new="secret2", confirm="secret3")
    assert not mismatch.ok and mismatch.error == ErrorKind.VALIDATION_FAILED

    wrong = await state.accounts.change_password(current="bad-one", new="secret2", confirm="secret2")
    assert not wrong.ok and wrong.message == "Current password is incorrect"

    assert (await state.accounts.change_password(current="secret1", new="secret2", confirm="secret2")).ok


@pytest.mark.asyncio
async def test_profile_image_defaults_to_generated_avatar(state) -> None:
    assert (await _register(state)).ok

    assert state.accounts.profile_image().startswith("https://ui-avatars.com/api/?name=Ann")

    assert state.accounts.set_profile_image("https://img.example/me.png").ok
    assert state.accounts.profile_image() == "https://img.example/me.png"


@pytest.mark.asyncio
async def test_email_change_is_refused_with_a_reason(state) -> None:
    assert (await _register(state)).ok

    same = state.accounts.validate_new_email("ann@example.com")
    assert not same.ok and same.error == ErrorKind.VALIDATION_FAILED

    other = state.accounts.validate_new_email("new@example.com")
    assert not other.ok and other.error == ErrorKind.REQUEST_FAILED
