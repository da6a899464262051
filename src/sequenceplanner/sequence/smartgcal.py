"""Expansion of smart calibration placeholders into concrete GCAL steps.

Real expansion depends on an observatory calibration table keyed by the full
instrument configuration.  The planner only needs the interface; the
:class:`TableGcalExpander` here maps each placeholder type to a fixed list of
GCAL settings, which is enough for planning and for tests.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Protocol, Sequence, TypeVar

from ..enums import SmartGcalType, StepType
from ..errors import SequenceUnavailable
from ..model import GcalStepConfig, ProtoStep

D = TypeVar("D")


class SmartGcalExpander(Protocol):
    """Turns a smart GCAL step into one or more concrete steps."""

    def expand_step(self, step: ProtoStep) -> List[ProtoStep]:
        ...


DEFAULT_GCAL_TABLE: Dict[SmartGcalType, Sequence[GcalStepConfig]] = {
    SmartGcalType.ARC: (GcalStepConfig(lamp="CuAr", filter="None", diffuser="Visible", shutter="Closed"),),
    SmartGcalType.FLAT: (GcalStepConfig(lamp="QH", filter="ND2.0", diffuser="Ir", shutter="Open"),),
}


class TableGcalExpander:
    """Expand smart steps using a fixed ``type -> settings`` table."""

    def __init__(
        self, table: Mapping[SmartGcalType, Sequence[GcalStepConfig]] = DEFAULT_GCAL_TABLE
    ) -> None:
        self._table = dict(table)

    def expand_step(self, step: ProtoStep) -> List[ProtoStep]:
        if step.step_type is not StepType.SMART_GCAL:
            return [step]
        kind = step.step_config.smart_gcal_type
        settings = self._table.get(kind)
        if not settings:
            raise SequenceUnavailable(f"missing Smart GCAL mapping for {kind.tag}")
        return [step.with_step_config(config) for config in settings]


__all__ = ["DEFAULT_GCAL_TABLE", "SmartGcalExpander", "TableGcalExpander"]
