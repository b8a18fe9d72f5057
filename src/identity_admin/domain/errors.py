"""Failure kinds surfaced by the lifecycle services.

The HTTP boundary maps each base class to one response status; concrete
errors raised by services subclass exactly one of them.
"""

from __future__ import annotations


class NotFoundError(LookupError):
    """Referenced entity does not exist in the required state."""


class InvalidArgumentError(ValueError):
    """Required input is missing or a new value collides with an active record."""


class ConflictingStateError(RuntimeError):
    """Request is valid in isolation but blocked by current system state."""
