from __future__ import annotations

from identity_admin.infrastructure.security.password_hasher import BcryptPasswordHasher


def test_hash_password_never_stores_plaintext() -> None:
    hasher = BcryptPasswordHasher(rounds=4)
    password = "super-secret-password"

    password_hash = hasher.hash_password(password)

    assert password_hash != password
    assert password not in password_hash


def test_same_password_gets_distinct_salted_hashes() -> None:
    hasher = BcryptPasswordHasher(rounds=4)

    assert hasher.hash_password("secret") != hasher.hash_password("secret")


def test_configured_rounds_are_encoded_in_hash() -> None:
    password_hash = BcryptPasswordHasher(rounds=5).hash_password("secret")

    assert password_hash.startswith("$2b$05$")
