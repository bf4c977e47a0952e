# src/taskly/auth/user_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    BLUE = "blue"
    GREEN = "green"

    @classmethod
    def parse(cls, raw: str | None) -> Theme | None:
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


def _first(raw: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        v = raw.get(k)
        if v is not None:
            return v
    return default


@dataclass(frozen=True, slots=True)
class User:
    """
    Public user record (never carries a password).

    The server and older local snapshots use different field names; from_dict
    accepts all of them, to_dict always emits camelCase.
    """

    email: str
    first_name: str = ""
    last_name: str = ""
    bio: str = ""
    created_at: str | None = None
    theme: Theme = Theme.LIGHT
    is_google_user: bool = False
    has_seen_tutorial: bool = False
    id: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "bio": self.bio,
            "createdAt": self.created_at,
            "theme": self.theme.value,
            "isGoogleUser": self.is_google_user,
            "hasSeenTutorial": self.has_seen_tutorial,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> User:
        raw_id = _first(raw, "id", "_id")
        return cls(
            email=str(raw.get("email") or "").strip().lower(),
            first_name=str(_first(raw, "firstName", "first_name", "fName", default="")),
            last_name=str(_first(raw, "lastName", "last_name", "lName", default="")),
            bio=str(raw.get("bio") or ""),
            created_at=_first(raw, "createdAt", "created_at"),
            theme=Theme.parse(raw.get("theme")) or Theme.LIGHT,
            is_google_user=bool(_first(raw, "isGoogleUser", "is_google_user", default=False)),
            has_seen_tutorial=bool(_first(raw, "hasSeenTutorial", "has_seen_tutorial", default=False)),
            id=str(raw_id) if raw_id is not None else None,
        )

    def merged(self, updates: dict[str, Any]) -> User:
        """Apply a partial (wire-shaped) update. email and createdAt are immutable here."""
        merged = {**self.to_dict(), **updates}
        merged["email"] = self.email
        merged["createdAt"] = self.created_at
        return User.from_dict(merged)
