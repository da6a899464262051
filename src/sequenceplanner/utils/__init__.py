"""Utility functions for the sequence planner."""

from .time import as_timedelta, clamp, to_microseconds
from .units import (
    format_decimal,
    microarcseconds_to_arcseconds,
    picometers_to_nanometers,
    to_microarcseconds,
    to_picometers,
)

__all__ = [
    "as_timedelta",
    "clamp",
    "format_decimal",
    "microarcseconds_to_arcseconds",
    "picometers_to_nanometers",
    "to_microarcseconds",
    "to_microseconds",
    "to_picometers",
]
