# src/taskly/auth/accounts.py

from __future__ import annotations

import logging
from urllib.parse import quote

from ..core.result import ErrorKind, Ok, Result, err
from ..core.validation import (
    MIN_PASSWORD_LENGTH,
    normalize_email,
    require_fields,
    validate_email,
    validate_login,
    validate_password_change,
    validate_registration,
)
from ..store.local_store import Purpose
from ..sync.gateway import SyncGateway
from ..tasks.lifecycle import TaskLifecycleManager
from .user_models import Theme, User

logger = logging.getLogger(__name__)


def default_profile_image(name: str = "User") -> str:
    return (
        f"https://ui-avatars.com/api/?name={quote(name or 'User')}"
        "&background=FFC107&color=2C1810&size=200"
    )


class AccountService:
    """
    Account-level operations used by the front-end.

    Input is validated here, before anything reaches the gateway. A successful
    login/register arms reminders for the user's tasks; logout disarms them.
    """

    def __init__(
        self,
        gateway: SyncGateway,
        lifecycle: TaskLifecycleManager,
        *,
        min_password_length: int = MIN_PASSWORD_LENGTH,
        default_theme: Theme = Theme.LIGHT,
    ) -> None:
        self._gateway = gateway
        self._lifecycle = lifecycle
        self._store = gateway.local.store
        self._min_pw = min_password_length
        self._default_theme = default_theme

    @property
    def current_user(self) -> User | None:
        return self._gateway.session.user

    # ---- session ----

    async def restore_session(self) -> bool:
        """App start: reload the persisted session and, if still valid, rearm reminders."""
        session = self._gateway.session
        if not session.restore():
            return False
        if session.token:
            profile = await self._gateway.get_profile()
            if not profile.ok and profile.error == ErrorKind.SESSION_EXPIRED:
                return False
        if session.user is None:
            return False
        await self._lifecycle.startup()
        return True

    async def register(
        self,
        *,
        email: str,
        password: str,
        confirm: str | None,
        first_name: str,
        last_name: str,
    ) -> Result[User]:
        invalid = validate_registration(
            email=email,
            password=password,
            confirm=confirm,
            first_name=first_name,
            last_name=last_name,
            min_password_length=self._min_pw,
        )
        if invalid is not None:
            return invalid

        result = await self._gateway.register(
            email=normalize_email(email),
            password=password,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
        )
        if result.ok:
            await self._lifecycle.startup()
        return result

    async def login(self, *, email: str, password: str, remember: bool = False) -> Result[User]:
        invalid = validate_login(email, password)
        if invalid is not None:
            return invalid

        key = normalize_email(email)
        result = await self._gateway.login(email=key, password=password)
        if not result.ok:
            return result

        if remember:
            self._store.set(Purpose.REMEMBERED_EMAIL, None, key)
        await self._lifecycle.startup()
        return result

    def logout(self) -> None:
        self._lifecycle.shutdown()
        self._gateway.logout()

    def remembered_email(self) -> str | None:
        val = self._store.get(Purpose.REMEMBERED_EMAIL)
        return val if isinstance(val, str) and val else None

    def forget_email(self) -> None:
        self._store.delete(Purpose.REMEMBERED_EMAIL)

    # ---- profile ----

    async def get_profile(self) -> Result[User]:
        return await self._gateway.get_profile()

    async def update_profile(self, *, first_name: str, last_name: str, bio: str = "") -> Result[User]:
        invalid = require_fields(first_name=first_name, last_name=last_name)
        if invalid is not None:
            return invalid
        return await self._gateway.update_profile(
            {"firstName": first_name.strip(), "lastName": last_name.strip(), "bio": (bio or "").strip()}
        )

    async def change_password(self, *, current: str, new: str, confirm: str) -> Result[str]:
        invalid = validate_password_change(current, new, confirm, min_length=self._min_pw)
        if invalid is not None:
            return invalid
        return await self._gateway.change_password(current_password=current, new_password=new)

    def validate_new_email(self, new_email: str) -> Result[str]:
        """
        Checks for the email-change dialog. The API has no email-change
        endpoint, so a valid request is still refused with a clear message.
        """
        user = self.current_user
        if user is None:
            return err(ErrorKind.NOT_AUTHENTICATED)
        invalid = validate_email(new_email)
        if invalid is not None:
            return invalid
        if normalize_email(new_email) == user.email:
            return err(ErrorKind.VALIDATION_FAILED, "New email is the same as current email")
        return err(ErrorKind.REQUEST_FAILED, "Email change requires backend API support. Please contact support.")

    # ---- theme / tutorial / image ----

    def get_theme(self) -> Theme:
        user = self.current_user
        if user is not None:
            return user.theme
        return Theme.parse(self._store.get(Purpose.THEME)) or self._default_theme

    async def set_theme(self, raw: str) -> Result[Theme]:
        theme = Theme.parse(raw)
        if theme is None:
            return err(ErrorKind.VALIDATION_FAILED, "Theme must be one of: " + ", ".join(t.value for t in Theme))

        self._store.set(Purpose.THEME, None, theme.value)
        if self.current_user is not None:
            result = await self._gateway.update_profile({"theme": theme.value})
            if not result.ok:
                logger.info("Theme kept locally; profile sync failed: %s", result.error)
                self._gateway.local.update_profile({"theme": theme.value})
        return Ok(theme)

    def needs_tutorial(self) -> bool:
        user = self.current_user
        if user is None:
            return False
        if user.has_seen_tutorial:
            return False
        return not bool(self._store.get(Purpose.TUTORIAL_SEEN, user.email, default=False))

    async def mark_tutorial_seen(self) -> None:
        user = self.current_user
        if user is None:
            return
        self._store.set(Purpose.TUTORIAL_SEEN, user.email, True)
        result = await self._gateway.update_profile({"hasSeenTutorial": True})
        if not result.ok:
            self._gateway.local.update_profile({"hasSeenTutorial": True})

    def profile_image(self) -> str:
        user = self.current_user
        if user is None:
            return "https://via.placeholder.com/200"
        img = self._store.get(Purpose.PROFILE_IMAGE, user.email)
        return img if isinstance(img, str) and img else default_profile_image(user.first_name or "User")

    def set_profile_image(self, url: str) -> Result[str]:
        user = self.current_user
        if user is None:
            return err(ErrorKind.NOT_AUTHENTICATED)
        if not (url or "").strip():
            return err(ErrorKind.VALIDATION_FAILED, "Image reference is required")
        self._store.set(Purpose.PROFILE_IMAGE, user.email, url.strip())
        return Ok(url.strip())
