"""Port for hashing user passwords before they reach storage."""

from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    """One-way password hashing contract used on user create and update."""

    def hash_password(self, password: str) -> str:
        """Hash normalized plaintext password for storage."""
