"""Permission tags attached to roles."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Permission(StrEnum):
    """Capabilities a role may carry. Stored only; never enforced here."""

    CREATE_USER = "CREATE_USER"
    VIEW_USER = "VIEW_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"


def sorted_permissions(permissions: Iterable[Permission]) -> list[Permission]:
    """Return permissions in deterministic order for storage and responses."""

    return sorted(set(permissions), key=lambda item: item.value)
