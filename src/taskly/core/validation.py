# src/taskly/core/validation.py

"""
Input checks that run before any network or storage call.

Every function returns None when the input is acceptable, otherwise an
Err(VALIDATION_FAILED) carrying the user-facing message.
"""

from __future__ import annotations

import re
from datetime import date, time

from .result import Err, ErrorKind, err

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_email(email: str | None) -> Err | None:
    e = normalize_email(email)
    if not e:
        return err(ErrorKind.VALIDATION_FAILED, "Email is required")
    if not _EMAIL_RE.match(e):
        return err(ErrorKind.VALIDATION_FAILED, "Please enter a valid email address")
    return None


def require_fields(**fields: object) -> Err | None:
    missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
    if missing:
        return err(ErrorKind.VALIDATION_FAILED, "Please fill all fields: " + ", ".join(missing))
    return None


def validate_new_password(
    password: str,
    confirm: str | None = None,
    *,
    min_length: int = MIN_PASSWORD_LENGTH,
) -> Err | None:
    if len(password) < min_length:
        return err(ErrorKind.VALIDATION_FAILED, f"Password must be at least {min_length} characters")
    if confirm is not None and password != confirm:
        return err(ErrorKind.VALIDATION_FAILED, "Passwords do not match")
    return None


def validate_registration(
    *,
    email: str,
    password: str,
    confirm: str | None,
    first_name: str,
    last_name: str,
    min_password_length: int = MIN_PASSWORD_LENGTH,
) -> Err | None:
    return (
        require_fields(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            **({"confirm": confirm} if confirm is not None else {}),
        )
        or validate_email(email)
        or validate_new_password(password, confirm, min_length=min_password_length)
    )


def validate_login(email: str, password: str) -> Err | None:
    if not (email or "").strip() or not (password or "").strip():
        return err(ErrorKind.VALIDATION_FAILED, "Please enter email and password")
    return validate_email(email)


def validate_password_change(
    current: str,
    new: str,
    confirm: str,
    *,
    min_length: int = MIN_PASSWORD_LENGTH,
) -> Err | None:
    return require_fields(current_password=current, new_password=new, confirm=confirm) or (
        validate_new_password(new, confirm, min_length=min_length)
    )


def parse_date(raw: str) -> date | None:
    try:
        return date.fromisoformat(raw.strip())
    except (AttributeError, ValueError):
        return None


def parse_time(raw: str) -> time | None:
    try:
        return time.fromisoformat(raw.strip())
    except (AttributeError, ValueError):
        return None
