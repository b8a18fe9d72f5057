from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from identity_admin.infrastructure.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    engine_level = logging.getLogger("sqlalchemy.engine").level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(engine_level)


def test_configure_logging_applies_requested_level() -> None:
    configure_logging(level="warning")

    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_debug_level_enables_sql_statement_logging() -> None:
    configure_logging(level="DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO


@pytest.mark.parametrize("level", ["", "   ", "not-a-level"])
def test_unknown_or_blank_level_falls_back_to_info(level: str) -> None:
    configure_logging(level=level)

    assert logging.getLogger().level == logging.INFO
