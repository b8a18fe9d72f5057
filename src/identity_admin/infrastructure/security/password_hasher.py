"""Bcrypt password hasher adapter."""

from __future__ import annotations

import bcrypt

from identity_admin.application.ports.password_hasher_port import PasswordHasherPort

DEFAULT_BCRYPT_ROUNDS = 12


class BcryptPasswordHasher(PasswordHasherPort):
    """Password hashing adapter using bcrypt with a configurable work factor."""

    def __init__(self, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")
