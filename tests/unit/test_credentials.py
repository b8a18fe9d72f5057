from __future__ import annotations

from collections.abc import Callable

import pytest

from identity_admin.domain.credentials import (
    normalize_role_name,
    normalize_user_email,
    normalize_user_password,
)
from identity_admin.domain.permissions import Permission, sorted_permissions


def test_email_is_trimmed_and_lowercased() -> None:
    assert normalize_user_email(email="  Ana.Souza@Example.ORG ") == "ana.souza@example.org"


def test_role_name_keeps_case_but_drops_surrounding_whitespace() -> None:
    assert normalize_role_name(name="  Store Manager ") == "Store Manager"


@pytest.mark.parametrize(
    "normalize",
    [
        lambda: normalize_user_email(email="   "),
        lambda: normalize_user_password(password=""),
        lambda: normalize_role_name(name="\t"),
    ],
)
def test_blank_inputs_are_rejected(normalize: Callable[[], str]) -> None:
    with pytest.raises(ValueError, match="cannot be blank"):
        normalize()


def test_sorted_permissions_deduplicates_and_orders_by_value() -> None:
    result = sorted_permissions(
        [Permission.VIEW_USER, Permission.CREATE_USER, Permission.VIEW_USER]
    )

    assert result == [Permission.CREATE_USER, Permission.VIEW_USER]


def test_password_surrounding_whitespace_is_kept() -> None:
    assert normalize_user_password(password=" pw ") == " pw "
