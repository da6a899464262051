"""GMOS long-slit target acquisition.

Acquisition starts with three images: a binned CCD2 image through the
acquisition filter, an unbinned central stamp with the slit in place and the
telescope offset 10″ in p, and an image through the slit.  After that the
through-slit image repeats, as often as the observer needs, while fine
adjustments are made.  The sequence is therefore infinite; consumers take a
prefix.
"""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Iterator, Optional, Sequence, TypeVar

from ..config import DEFAULT_CONFIG, PlannerConfig
from ..enums import GmosRoi, GmosXBinning, GmosYBinning, ObserveClass
from ..execution import StepRecord
from ..instruments import DynamicAccessors
from ..model import Offset, ProtoAtom, ProtoStep
from ..sequence import evaluate, science_step
from ..utils.time import clamp
from ..utils.units import to_microarcseconds
from .config import LongSlitConfig

logger = logging.getLogger(__name__)

F = TypeVar("F")

INITIAL_ATOM = "Initial Acquisition"
FINE_ADJUSTMENTS_ATOM = "Fine Adjustments"


def choose_filter(filters: Sequence[F], wavelength: int) -> F:
    """The filter whose effective wavelength is nearest ``wavelength`` (pm)."""
    return min(filters, key=lambda f: abs(wavelength - f.wavelength))


def acquisition_exposure_time(
    exposure_time: timedelta, planner: PlannerConfig = DEFAULT_CONFIG
) -> timedelta:
    return clamp(exposure_time, planner.acquisition_min_exposure, planner.acquisition_max_exposure)


@dataclass(frozen=True)
class AcquisitionSteps:
    """The distinct steps used to form an acquisition sequence."""

    ccd2: ProtoStep
    p10: ProtoStep
    slit: ProtoStep

    @property
    def initial_atom(self) -> ProtoAtom:
        return ProtoAtom.of(INITIAL_ATOM, self.ccd2, self.p10, self.slit)

    @property
    def repeating_atom(self) -> ProtoAtom:
        return ProtoAtom.of(FINE_ADJUSTMENTS_ATOM, self.slit)


def compute_steps(
    accessors: DynamicAccessors,
    acquisition_filters: Sequence,
    fpu,
    exposure_time: timedelta,
    wavelength: int,
    planner: PlannerConfig = DEFAULT_CONFIG,
) -> AcquisitionSteps:
    """Build the three acquisition steps for ``accessors``' instrument."""
    exposure_time = acquisition_exposure_time(exposure_time, planner)
    acq_filter = choose_filter(acquisition_filters, wavelength)
    slit_time = min(planner.acquisition_slit_max_exposure, exposure_time * 3)
    p_offset = to_microarcseconds(planner.acquisition_p_offset_arcsec)

    ccd2, p10, slit = evaluate(
        accessors.initial,
        [
            accessors.exposure.assign(exposure_time),
            accessors.filter.assign(acq_filter),
            accessors.fpu.assign(None),
            accessors.grating.assign(None),
            accessors.x_bin.assign(GmosXBinning.TWO),
            accessors.y_bin.assign(GmosYBinning.TWO),
            accessors.roi.assign(GmosRoi.CCD2),
            science_step(Offset(0, 0), ObserveClass.ACQUISITION),
            accessors.exposure.assign(planner.acquisition_p10_exposure),
            accessors.fpu.assign(fpu),
            accessors.x_bin.assign(GmosXBinning.ONE),
            accessors.y_bin.assign(GmosYBinning.ONE),
            accessors.roi.assign(GmosRoi.CENTRAL_STAMP),
            science_step(Offset(p_offset, 0), ObserveClass.ACQUISITION),
            accessors.exposure.assign(slit_time),
            science_step(Offset(0, 0), ObserveClass.ACQUISITION),
        ],
    )
    return AcquisitionSteps(ccd2, p10, slit)


def steps_for(
    config: LongSlitConfig, exposure_time: timedelta, planner: PlannerConfig = DEFAULT_CONFIG
) -> AcquisitionSteps:
    accessors = config.accessors
    return compute_steps(
        accessors,
        accessors.filter_type.acquisition(),
        config.fpu,
        exposure_time,
        config.central_wavelength,
        planner,
    )


def acquisition_atoms(steps: AcquisitionSteps) -> Iterator[ProtoAtom]:
    """The full, never-ending acquisition sequence."""
    return itertools.chain([steps.initial_atom], itertools.repeat(steps.repeating_atom))


class Phase(enum.Enum):
    EXPECT_CCD2 = "ExpectCcd2"
    EXPECT_P10 = "ExpectP10"
    EXPECT_SLIT = "ExpectSlit"


@dataclass(frozen=True)
class AcquisitionState:
    """Tracks acquisition progress within a visit.

    Completed steps move the state from expecting the CCD2 image, to
    expecting the offset slit image, to expecting through-slit images.  A new
    visit, or any step outside the acquisition sequence, starts over.
    """

    steps: AcquisitionSteps
    phase: Phase = Phase.EXPECT_CCD2
    visit_id: Optional[str] = None
    initial_atom: bool = True

    def generate(self) -> Iterator[ProtoAtom]:
        """Remaining acquisition atoms from the current state."""
        if self.phase is Phase.EXPECT_CCD2:
            first: Optional[ProtoAtom] = self.steps.initial_atom
        elif self.phase is Phase.EXPECT_P10:
            first = ProtoAtom.of(INITIAL_ATOM, self.steps.p10, self.steps.slit)
        elif self.initial_atom:
            first = ProtoAtom.of(INITIAL_ATOM, self.steps.slit)
        else:
            first = None

        repeating = itertools.repeat(self.steps.repeating_atom)
        if first is None:
            return repeating
        return itertools.chain([first], repeating)

    def reset(self, visit_id: Optional[str]) -> "AcquisitionState":
        return AcquisitionState(self.steps, Phase.EXPECT_CCD2, visit_id, True)

    def record_visit(self, visit_id: str) -> "AcquisitionState":
        if visit_id == self.visit_id:
            return self
        return self.reset(visit_id)

    def record_step(self, step: StepRecord) -> "AcquisitionState":
        if self.visit_id is None or step.visit_id != self.visit_id:
            logger.debug("Acquisition reset for visit %s", step.visit_id)
            return self.reset(step.visit_id)._record_in_visit(step)
        return self._record_in_visit(step)

    def _record_in_visit(self, step: StepRecord) -> "AcquisitionState":
        if not step.is_acquisition_sequence:
            return self.reset(step.visit_id)
        if not step.successfully_completed:
            return self

        if self.phase is Phase.EXPECT_CCD2 and step.proto_step == self.steps.ccd2:
            return replace(self, phase=Phase.EXPECT_P10)
        if self.phase is Phase.EXPECT_P10 and step.proto_step == self.steps.p10:
            return replace(self, phase=Phase.EXPECT_SLIT, initial_atom=True)
        if self.phase is Phase.EXPECT_SLIT and step.proto_step == self.steps.slit:
            return replace(self, initial_atom=False)
        return self


__all__ = [
    "AcquisitionState",
    "AcquisitionSteps",
    "FINE_ADJUSTMENTS_ATOM",
    "INITIAL_ATOM",
    "Phase",
    "acquisition_atoms",
    "acquisition_exposure_time",
    "choose_filter",
    "compute_steps",
    "steps_for",
]
