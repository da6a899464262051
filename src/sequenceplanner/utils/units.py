"""Unit conversions between user-facing quantities and integer storage.

Wavelengths are stored as integer picometres and angles as integer
microarcseconds so that configurations compare and hash exactly.  These
helpers accept either bare numbers (nanometres / arcseconds) or
``astropy.units.Quantity`` values.
"""

from __future__ import annotations

from typing import Union

import astropy.units as u

QuantityLike = Union[u.Quantity, float, int]


def to_picometers(value: QuantityLike) -> int:
    """Return ``value`` as whole picometres.

    Bare numbers are interpreted as nanometres.

    Examples
    --------
    >>> to_picometers(500)
    500000
    >>> to_picometers(5 * u.nm)
    5000
    """
    quantity = u.Quantity(value, u.nm)
    return int(round(float(quantity.to_value(u.pm))))


def to_microarcseconds(value: QuantityLike) -> int:
    """Return ``value`` as whole microarcseconds.

    Bare numbers are interpreted as arcseconds.
    """
    quantity = u.Quantity(value, u.arcsec)
    return int(round(float(quantity.to_value(u.uas))))


def picometers_to_nanometers(pm: int) -> float:
    return float((pm * u.pm).to_value(u.nm))


def microarcseconds_to_arcseconds(uas: int) -> float:
    return float((uas * u.uas).to_value(u.arcsec))


def format_decimal(value: float) -> str:
    """Render ``value`` without a trailing ``.0`` for whole numbers."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


__all__ = [
    "format_decimal",
    "microarcseconds_to_arcseconds",
    "picometers_to_nanometers",
    "to_microarcseconds",
    "to_picometers",
]
