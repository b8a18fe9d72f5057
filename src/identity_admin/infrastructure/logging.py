"""Shared logging configuration for the admin API process."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: str) -> None:
    """Configure process logging with consistent format and runtime level."""

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved_level = getattr(logging, normalized_level, logging.INFO)

    logging.basicConfig(
        level=resolved_level,
        format=_LOG_FORMAT,
        force=True,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if resolved_level <= logging.DEBUG else logging.WARNING
    )
