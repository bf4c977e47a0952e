# src/taskly/core/session.py

from __future__ import annotations

import logging

from ..auth.user_models import User
from ..store.local_store import LocalStore, Purpose

logger = logging.getLogger(__name__)


class Session:
    """
    Process-scoped authentication context.

    Lifecycle:
    - restore(): app start, reload token + current-user snapshot from the store
    - begin():   successful login/register (remote or local)
    - clear():   logout or a 401 from the server

    The token is None for sessions opened through the offline path; such a
    session still has a current user and can use the local task collections.
    """

    def __init__(self, store: LocalStore) -> None:
        self._store = store
        self.token: str | None = None
        self.user: User | None = None

    @property
    def owner(self) -> str | None:
        return self.user.email if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def restore(self) -> bool:
        token = self._store.get(Purpose.AUTH_TOKEN)
        raw_user = self._store.get(Purpose.CURRENT_USER)
        self.token = token if isinstance(token, str) and token else None
        self.user = User.from_dict(raw_user) if isinstance(raw_user, dict) and raw_user.get("email") else None
        logger.info("Session restored token=%s user=%s", bool(self.token), self.owner)
        return self.token is not None or self.user is not None

    def begin(self, user: User, token: str | None) -> None:
        self.user = user
        self.token = token or None
        if self.token:
            self._store.set(Purpose.AUTH_TOKEN, None, self.token)
        else:
            self._store.delete(Purpose.AUTH_TOKEN)
        self._store.set(Purpose.CURRENT_USER, None, user.to_dict())
        logger.info("Session started user=%s remote=%s", user.email, bool(self.token))

    def set_user(self, user: User) -> None:
        self.user = user
        self._store.set(Purpose.CURRENT_USER, None, user.to_dict())

    def clear(self) -> None:
        logger.info("Session cleared user=%s", self.owner)
        self.token = None
        self.user = None
        self._store.delete(Purpose.AUTH_TOKEN)
        self._store.delete(Purpose.CURRENT_USER)
