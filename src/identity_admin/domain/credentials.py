"""Shared normalization helpers for user credential inputs."""

from __future__ import annotations


def normalize_user_email(*, email: str) -> str:
    """Normalize one user email and reject blank values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    return normalized


def normalize_user_password(*, password: str) -> str:
    """Reject blank passwords; the value itself is returned untouched."""

    if not password.strip():
        raise ValueError("password cannot be blank")
    return password


def normalize_role_name(*, name: str) -> str:
    """Strip surrounding whitespace from a role name and reject blank values."""

    normalized = name.strip()
    if not normalized:
        raise ValueError("role name cannot be blank")
    return normalized
