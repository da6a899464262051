"""Instrument-specific accessors used by the sequence generators."""

from .accessors import (
    GMOS_NORTH,
    GMOS_SOUTH,
    Accessor,
    DynamicAccessors,
    GmosNorthAccessors,
    GmosSouthAccessors,
)

__all__ = [
    "Accessor",
    "DynamicAccessors",
    "GMOS_NORTH",
    "GMOS_SOUTH",
    "GmosNorthAccessors",
    "GmosSouthAccessors",
]
