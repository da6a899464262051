"""Sequence state engine."""

from .smartgcal import DEFAULT_GCAL_TABLE, SmartGcalExpander, TableGcalExpander
from .state import Edit, Emit, Op, arc_step, evaluate, flat_step, run, science_step, step

__all__ = [
    "DEFAULT_GCAL_TABLE",
    "Edit",
    "Emit",
    "Op",
    "SmartGcalExpander",
    "TableGcalExpander",
    "arc_step",
    "evaluate",
    "flat_step",
    "run",
    "science_step",
    "step",
]
