"""Planned steps and atoms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, Sequence, Tuple, TypeVar, Union

from ..enums import ObserveClass, SmartGcalType, StepType
from .dynamic import TelescopeConfig

D = TypeVar("D")


@dataclass(frozen=True)
class ScienceStepConfig:
    @property
    def step_type(self) -> StepType:
        return StepType.SCIENCE


@dataclass(frozen=True)
class SmartGcalStepConfig:
    """Placeholder for a calibration to be expanded into concrete GCAL settings."""

    smart_gcal_type: SmartGcalType

    @property
    def step_type(self) -> StepType:
        return StepType.SMART_GCAL


@dataclass(frozen=True)
class GcalStepConfig:
    """Concrete facility calibration unit settings."""

    lamp: str
    filter: str = "None"
    diffuser: str = "Ir"
    shutter: str = "Open"

    @property
    def step_type(self) -> StepType:
        return StepType.GCAL


StepConfig = Union[ScienceStepConfig, SmartGcalStepConfig, GcalStepConfig]


@dataclass(frozen=True)
class ProtoStep(Generic[D]):
    """A step ready to be placed in an atom.

    ``value`` is a snapshot of the dynamic instrument configuration.
    """

    value: D
    step_config: StepConfig
    telescope_config: TelescopeConfig
    observe_class: ObserveClass
    breakpoint: bool = False

    @property
    def step_type(self) -> StepType:
        return self.step_config.step_type

    @property
    def is_science(self) -> bool:
        return self.step_type is StepType.SCIENCE

    @property
    def is_gcal(self) -> bool:
        return self.step_type is StepType.GCAL

    def with_step_config(self, step_config: StepConfig) -> "ProtoStep[D]":
        return ProtoStep(
            self.value,
            step_config,
            self.telescope_config,
            self.observe_class,
            self.breakpoint,
        )


@dataclass(frozen=True)
class ProtoAtom(Generic[D]):
    """Named, non-empty group of steps that share a purpose."""

    description: Optional[str]
    steps: Tuple[ProtoStep[D], ...]

    def __post_init__(self) -> None:
        if not isinstance(self.steps, tuple):
            object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise ValueError("ProtoAtom requires at least one step")

    @classmethod
    def of(cls, description: Optional[str], *steps: ProtoStep[D]) -> "ProtoAtom[D]":
        return cls(description, tuple(steps))

    @classmethod
    def from_steps(
        cls, description: Optional[str], steps: Sequence[ProtoStep[D]]
    ) -> Optional["ProtoAtom[D]"]:
        """Return an atom, or ``None`` when ``steps`` is empty."""
        if not steps:
            return None
        return cls(description, tuple(steps))

    def __len__(self) -> int:
        return len(self.steps)


__all__ = [
    "GcalStepConfig",
    "ProtoAtom",
    "ProtoStep",
    "ScienceStepConfig",
    "SmartGcalStepConfig",
    "StepConfig",
]
