"""Duration helpers for the sequence planner."""

from __future__ import annotations

from datetime import timedelta
from typing import Union

SecondsLike = Union[timedelta, float, int]


def to_microseconds(duration: timedelta) -> int:
    """Return ``duration`` as an integer number of microseconds.

    Examples
    --------
    >>> to_microseconds(timedelta(minutes=1))
    60000000
    """
    return (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds


def as_timedelta(value: SecondsLike) -> timedelta:
    """Coerce seconds (or an existing ``timedelta``) into a ``timedelta``."""
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=value)


def clamp(duration: timedelta, lower: timedelta, upper: timedelta) -> timedelta:
    """Restrict ``duration`` to the closed range ``[lower, upper]``."""
    return max(lower, min(duration, upper))


__all__ = ["as_timedelta", "clamp", "to_microseconds"]
