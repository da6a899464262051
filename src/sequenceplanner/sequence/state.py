"""Explicit state-passing evaluation of step programs.

A *program* is a list of operations applied to an instrument's dynamic
configuration, left to right.  :class:`Edit` operations return a new
configuration; :class:`Emit` operations read the current configuration and
produce one :class:`~sequenceplanner.model.ProtoStep`.  Nothing is mutated:
:func:`run` folds the operations over the initial configuration and returns
the final configuration together with the steps emitted along the way.

Example
-------
>>> from datetime import timedelta
>>> from sequenceplanner.instruments import GMOS_NORTH
>>> _, (step,) = run(GMOS_NORTH.initial, [
...     GMOS_NORTH.exposure.assign(timedelta(seconds=30)),
...     science_step(Offset(0, 0)),
... ])
>>> step.value.exposure
datetime.timedelta(seconds=30)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Callable, Generic, Iterable, List, Optional, Tuple, TypeVar, Union

from ..enums import GuideState, ObserveClass, SmartGcalType
from ..model import (
    Offset,
    ProtoStep,
    ScienceStepConfig,
    SmartGcalStepConfig,
    StepConfig,
    TelescopeConfig,
)

D = TypeVar("D")


@dataclass(frozen=True)
class Edit(Generic[D]):
    """Configuration change applied between steps."""

    apply: Callable[[D], D]
    label: str = ""


@dataclass(frozen=True)
class Emit(Generic[D]):
    """Emit one step built from the current configuration."""

    build: Callable[[D], ProtoStep[D]]


Op = Union[Edit, Emit]


def step(state: D, op: Op) -> Tuple[D, Optional[ProtoStep[D]]]:
    """Apply a single operation, returning the next state and any step."""
    if isinstance(op, Edit):
        return op.apply(state), None
    if isinstance(op, Emit):
        return state, op.build(state)
    raise TypeError(f"Unsupported sequence operation: {op!r}")


def run(initial: D, ops: Iterable[Op]) -> Tuple[D, List[ProtoStep[D]]]:
    """Fold ``ops`` over ``initial``.

    Returns
    -------
    tuple
        The final configuration and the emitted steps in order.
    """

    def _advance(acc: Tuple[D, List[ProtoStep[D]]], op: Op) -> Tuple[D, List[ProtoStep[D]]]:
        state, emitted = acc
        state, produced = step(state, op)
        if produced is not None:
            emitted = emitted + [produced]
        return state, emitted

    return reduce(_advance, ops, (initial, []))


def evaluate(initial: D, ops: Iterable[Op]) -> List[ProtoStep[D]]:
    """Like :func:`run` but keeps only the emitted steps."""
    return run(initial, ops)[1]


def _emit(
    step_config: StepConfig,
    offset: Offset,
    guiding: GuideState,
    observe_class: ObserveClass,
) -> Emit:
    telescope = TelescopeConfig(offset, guiding)
    return Emit(lambda d: ProtoStep(d, step_config, telescope, observe_class))


def science_step(
    offset: Offset,
    observe_class: ObserveClass = ObserveClass.SCIENCE,
    guiding: GuideState = GuideState.ENABLED,
) -> Emit:
    """Emit a science exposure at ``offset``."""
    return _emit(ScienceStepConfig(), offset, guiding, observe_class)


def flat_step(
    offset: Offset,
    observe_class: ObserveClass = ObserveClass.NIGHT_CAL,
    guiding: GuideState = GuideState.DISABLED,
) -> Emit:
    """Emit a smart flat placeholder for later GCAL expansion."""
    return _emit(SmartGcalStepConfig(SmartGcalType.FLAT), offset, guiding, observe_class)


def arc_step(
    offset: Offset,
    observe_class: ObserveClass = ObserveClass.NIGHT_CAL,
    guiding: GuideState = GuideState.DISABLED,
) -> Emit:
    """Emit a smart arc placeholder for later GCAL expansion."""
    return _emit(SmartGcalStepConfig(SmartGcalType.ARC), offset, guiding, observe_class)


__all__ = [
    "Edit",
    "Emit",
    "Op",
    "arc_step",
    "evaluate",
    "flat_step",
    "run",
    "science_step",
    "step",
]
