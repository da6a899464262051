"""GMOS long-slit science sequence generation.

Science time is divided into nominal one hour blocks.  Each block is tied to
one *adjustment* (a wavelength dither and a spatial offset in q) and holds an
arc, a flat and as many science exposures as fit in the hour.  Calibrations
stay valid for 90 minutes, which leaves slack to finish a block that started
late.

Each block becomes its own atom.  Science exposures recorded with valid
calibrations in their block count toward completion regardless of the order
in which the steps were actually taken.
"""

from __future__ import annotations

import itertools
import logging
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from ..config import DEFAULT_CONFIG, PlannerConfig
from ..enums import CalibrationRole, GmosGratingOrder, ObserveClass, StepType
from ..errors import SequenceUnavailable
from ..execution import StepRecord
from ..instruments import DynamicAccessors
from ..model import IntegrationTime, Offset, ProtoAtom, ProtoStep
from ..remaining import Remaining
from ..sequence import (
    Op,
    SmartGcalExpander,
    TableGcalExpander,
    arc_step,
    evaluate,
    flat_step,
    science_step,
)
from ..utils.time import to_microseconds
from ..utils.units import (
    format_decimal,
    microarcseconds_to_arcseconds,
    picometers_to_nanometers,
)
from .config import LongSlitConfig

logger = logging.getLogger(__name__)

D = TypeVar("D")


# ============================================================================
# ALLOCATION
# ============================================================================


@dataclass(frozen=True)
class Adjustment:
    """A wavelength dither (pm) paired with a spatial offset in q (µas)."""

    wavelength_dither: int
    q: int

    @property
    def description(self) -> str:
        nm = format_decimal(picometers_to_nanometers(self.wavelength_dither))
        arcsec = format_decimal(microarcseconds_to_arcseconds(self.q))
        return f"{nm} nm, {arcsec}″"

    @staticmethod
    def compute(dithers: Sequence[int], offsets: Sequence[int]) -> List["Adjustment"]:
        """Zip repeating dithers with repeating offsets.

        The result has ``lcm(len(dithers), len(offsets))`` entries.  For
        dithers (0, 5 nm) and offsets (0, 15, -15)″ that is six adjustments:
        (0, 0), (5, 15), (0, -15), (5, 0), (0, 15), (5, -15).  An empty list
        behaves like a single zero.
        """
        dithers = list(dithers) or [0]
        offsets = list(offsets) or [0]
        size = int(np.lcm.reduce([len(dithers), len(offsets)]))
        pairs = zip(itertools.cycle(dithers), itertools.cycle(offsets))
        return [Adjustment(d, q) for d, q in itertools.islice(pairs, size)]


@dataclass(frozen=True)
class Goal:
    """Exposure targets for one adjustment.

    Attributes
    ----------
    adjustment
        The dither/offset combination.
    per_block
        Science exposures in one full block at this adjustment.
    total
        Science exposures at this adjustment over the whole observation.
    """

    adjustment: Adjustment
    per_block: int
    total: int

    @staticmethod
    def compute(
        dithers: Sequence[int],
        offsets: Sequence[int],
        integration: IntegrationTime,
        science_period: timedelta = DEFAULT_CONFIG.science_period,
    ) -> List["Goal"]:
        """Distribute ``integration.exposure_count`` over the adjustments.

        When the exposures cannot fill one block at every adjustment they are
        spread as evenly as possible, earlier adjustments taking any extras.
        Otherwise as many whole blocks as possible are filled, in adjustment
        order, and the adjustment after the last whole block gets the
        leftover.
        """
        adjustments = Adjustment.compute(dithers, offsets)
        size = len(adjustments)

        period = to_microseconds(science_period)
        exposure = to_microseconds(integration.exposure_time)
        if exposure <= 0:
            raise ValueError("Goal computation requires a positive exposure time")
        max_per_block = period // min(period, exposure)
        count = integration.exposure_count

        if count <= size * max_per_block:
            per_adjustment, extra = divmod(count, size)
            goals = []
            for idx, adjustment in enumerate(adjustments):
                n = per_adjustment + (1 if idx < extra else 0)
                goals.append(Goal(adjustment, n, n))
            return goals

        full_blocks = count // max_per_block
        base = full_blocks // size * max_per_block
        boundary = full_blocks % size
        goals = []
        for idx, adjustment in enumerate(adjustments):
            if idx < boundary:
                extra = max_per_block
            elif idx == boundary:
                extra = count % max_per_block
            else:
                extra = 0
            goals.append(Goal(adjustment, max_per_block, base + extra))
        return goals


# ============================================================================
# BLOCK DEFINITIONS
# ============================================================================


@dataclass(frozen=True)
class BlockDefinition(Generic[D]):
    """Steps that make up one block for a goal.

    ``arcs`` and ``flats`` usually hold one step each, but smart calibration
    expansion can prescribe several concrete steps per placeholder.
    """

    goal: Goal
    arcs: Tuple[ProtoStep[D], ...]
    flats: Tuple[ProtoStep[D], ...]
    science: ProtoStep[D]

    @property
    def all_cals(self) -> Tuple[ProtoStep[D], ...]:
        return self.arcs + self.flats

    @property
    def cal_counts(self) -> Counter:
        return Counter(self.all_cals)

    @property
    def description(self) -> str:
        return self.goal.adjustment.description

    def matches(self, record: StepRecord) -> bool:
        if not record.is_science_sequence:
            return False
        if record.step_type is StepType.GCAL:
            return record.proto_step in self.arcs or record.proto_step in self.flats
        if record.step_type is StepType.SCIENCE:
            return record.proto_step == self.science
        return False


def setup_ops(
    accessors: DynamicAccessors, config: LongSlitConfig, integration: IntegrationTime
) -> List[Op]:
    """Edits that put the instrument into the configured long-slit mode."""
    return [
        accessors.exposure.assign(integration.exposure_time),
        accessors.grating.assign(
            (config.grating, GmosGratingOrder.ONE, config.central_wavelength)
        ),
        accessors.filter.assign(config.filter),
        accessors.fpu.assign(config.fpu),
        accessors.x_bin.assign(config.x_bin),
        accessors.y_bin.assign(config.y_bin),
        accessors.amp_read_mode.assign(config.amp_read_mode),
        accessors.amp_gain.assign(config.amp_gain),
        accessors.roi.assign(config.roi),
    ]


def _dithered(central: int, dither: int) -> int:
    shifted = central + dither
    return shifted if shifted > 0 else central


def compute_block_definitions(
    accessors: DynamicAccessors,
    expander: SmartGcalExpander,
    config: LongSlitConfig,
    integration: IntegrationTime,
    calibration_role: Optional[CalibrationRole] = None,
    planner: PlannerConfig = DEFAULT_CONFIG,
) -> List[BlockDefinition]:
    """Build one :class:`BlockDefinition` per goal.

    Twilight observations skip flats and account all steps as daytime
    calibration; any calibration role skips arcs.
    """
    twilight = calibration_role is CalibrationRole.TWILIGHT
    cal_class = ObserveClass.DAY_CAL if twilight else ObserveClass.NIGHT_CAL
    science_class = ObserveClass.DAY_CAL if twilight else ObserveClass.SCIENCE
    include_flats = not twilight
    include_arcs = calibration_role is None

    goals = Goal.compute(
        config.wavelength_dithers, config.spatial_offsets, integration, planner.science_period
    )

    definitions = []
    for goal in goals:
        offset = Offset(0, goal.adjustment.q)
        ops = setup_ops(accessors, config, integration) + [
            accessors.wavelength.assign(
                _dithered(config.central_wavelength, goal.adjustment.wavelength_dither)
            ),
            arc_step(offset, cal_class),
            flat_step(offset, cal_class),
            science_step(offset, science_class),
        ]
        smart_arc, smart_flat, science = evaluate(accessors.initial, ops)

        flats = tuple(expander.expand_step(smart_flat)) if include_flats else ()
        arcs = tuple(expander.expand_step(smart_arc)) if include_arcs else ()
        definitions.append(BlockDefinition(goal, arcs, flats, science))

    return definitions


# ============================================================================
# PROGRESS TRACKING
# ============================================================================


@dataclass(frozen=True)
class BlockWindow:
    """Recorded steps of one block within a single calibration validity period."""

    definition: BlockDefinition
    steps: Tuple[StepRecord, ...]

    @property
    def missing_cal_counts(self) -> Counter:
        missing = self.definition.cal_counts
        for record in self.steps:
            if record.successfully_completed and record.is_gcal and missing[record.proto_step] > 0:
                missing[record.proto_step] -= 1
        return +missing

    @property
    def missing_cals(self) -> List[ProtoStep]:
        """Missing calibrations in block order."""
        remaining = self.missing_cal_counts
        missing = []
        for cal in self.definition.all_cals:
            if remaining[cal] > 0:
                missing.append(cal)
                remaining[cal] -= 1
        return missing

    @property
    def pending_science(self) -> frozenset:
        return frozenset(
            r.id for r in self.steps if r.successfully_completed and r.is_science
        )

    @property
    def calibrated_science(self) -> frozenset:
        if self.missing_cal_counts:
            return frozenset()
        return self.pending_science


@dataclass(frozen=True)
class BlockRecord:
    """A block definition, its settled completion count and unsettled steps."""

    definition: BlockDefinition
    completed: int = 0
    steps: Tuple[StepRecord, ...] = ()
    cal_validity_period: timedelta = DEFAULT_CONFIG.cal_validity_period

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def remaining_in_obs(self) -> int:
        return max(self.definition.goal.total - self.completed, 0)

    def remaining_in_block(self, pending: int = 0) -> int:
        """Science exposures still possible in the current block iteration."""
        per_block = self.definition.goal.per_block
        return max(min(self.remaining_in_obs, per_block) - pending, 0)

    @property
    def blocks_needed(self) -> int:
        per_block = self.definition.goal.per_block
        if per_block <= 0:
            return 0
        return math.ceil(self.remaining_in_obs / per_block)

    @property
    def start_time(self) -> Optional[datetime]:
        return self.steps[0].created if self.steps else None

    @property
    def end_time(self) -> Optional[datetime]:
        return self.steps[-1].created if self.steps else None

    def windows(self) -> Iterator[BlockWindow]:
        """Calibration validity windows covering the recorded steps."""
        if not self.steps:
            return
        last = self.end_time
        for record in self.steps:
            start = record.created
            end = min(start + self.cal_validity_period, last)
            yield BlockWindow(
                self.definition,
                tuple(r for r in self.steps if start <= r.created <= end),
            )
            if not end < last:
                break

    def window_ending_at(self, timestamp: datetime) -> BlockWindow:
        start = timestamp - self.cal_validity_period
        return BlockWindow(
            self.definition,
            tuple(r for r in self.steps if start <= r.created <= timestamp),
        )

    @property
    def calibrated_science(self) -> frozenset:
        ids: frozenset = frozenset()
        for window in self.windows():
            ids = ids | window.calibrated_science
        return ids

    def settle(self) -> "BlockRecord":
        """Book calibrated science into ``completed`` and drop the steps."""
        if not self.steps:
            return self
        return replace(
            self, completed=self.completed + len(self.calibrated_science), steps=()
        )

    def record(self, step: StepRecord) -> "BlockRecord":
        if not self.definition.matches(step):
            return self
        steps = tuple(sorted(self.steps + (step,), key=lambda r: r.created))
        return replace(self, steps=steps)

    def add(self, n: int) -> "BlockRecord":
        return replace(self, completed=self.completed + n)

    def generate_full(self) -> Tuple[int, List[ProtoStep]]:
        """A fresh block: all calibrations then the science exposures."""
        count = self.remaining_in_block(0)
        if count == 0:
            return 0, []
        return count, list(self.definition.all_cals) + [self.definition.science] * count

    def generate_partial(
        self, timestamp: datetime, exposure_time: timedelta
    ) -> Tuple[int, List[ProtoStep]]:
        """Steps that complete a block already in progress at ``timestamp``.

        Science is limited by what fits before the block's calibrations
        expire, estimated from the science exposure time alone.
        """
        window = self.window_ending_at(timestamp)
        missing_cals = window.missing_cals
        calibrated = self.calibrated_science
        uncalibrated = (window.pending_science - calibrated) if missing_cals else frozenset()

        current = len(calibrated | uncalibrated)
        max_remaining = self.remaining_in_block(current)

        limit = self.start_time + self.cal_validity_period
        begin = max(self.end_time, timestamp)
        available = limit - begin if begin <= limit else timedelta(0)

        fits = available // exposure_time if exposure_time > timedelta(0) else 0
        new_count = min(max_remaining, fits)
        if new_count <= 0:
            if uncalibrated:
                return current, missing_cals
            return len(calibrated), []

        science = [self.definition.science] * new_count
        steps = missing_cals + science if current == 0 else science + missing_cals
        return current + new_count, steps


# ============================================================================
# GENERATOR
# ============================================================================


@dataclass(frozen=True)
class ScienceGenerator:
    """Immutable science sequence generator.

    :meth:`generate` yields the atoms still needed; :meth:`record_step`
    returns a new generator that accounts for an executed step.
    """

    integration: IntegrationTime
    records: Tuple[BlockRecord, ...]
    pos: int = 0
    last_atom_id: Optional[str] = None
    planner: PlannerConfig = field(default=DEFAULT_CONFIG)

    @property
    def length(self) -> int:
        return len(self.records)

    @property
    def completed(self) -> int:
        """Science exposures settled as complete so far."""
        return sum(r.completed for r in self.records)

    def progress(self) -> Dict[str, int]:
        """Completed science per adjustment, counting unsettled calibrated steps."""
        return {r.description: r.settle().completed for r in self.records}

    @property
    def is_complete(self) -> bool:
        return sum(self.progress().values()) >= self.integration.exposure_count

    def generate(self, timestamp: Optional[datetime] = None) -> Iterator[ProtoAtom]:
        """Yield the remaining atoms, one block per atom."""
        records = list(self.records)
        target = self.integration.exposure_count

        current = records[self.pos]
        if current.steps:
            when = timestamp if timestamp is not None else current.end_time
            n, steps = current.generate_partial(when, self.integration.exposure_time)
            # The partial count already includes the calibrated steps on record.
            records[self.pos] = replace(current, steps=()).add(n)
        else:
            n, steps = current.generate_full()
            records[self.pos] = current.add(n)
        atom = ProtoAtom.from_steps(current.description, steps)
        if atom is not None:
            logger.debug("Science atom %s with %d steps", atom.description, len(atom))
            yield atom

        order = [(idx + self.pos + 1) % self.length for idx in range(self.length)]
        remaining = Remaining.from_pairs((idx, records[idx].blocks_needed) for idx in order)

        while sum(r.completed for r in records) < target:
            picked, remaining = remaining.take(1)
            if not picked:
                break
            idx = picked[0]
            n, steps = records[idx].generate_full()
            records[idx] = records[idx].add(n)
            atom = ProtoAtom.from_steps(records[idx].description, steps)
            if atom is not None:
                logger.debug("Science atom %s with %d steps", atom.description, len(atom))
                yield atom

    def _advance_pos(self, start: int, step: StepRecord) -> int:
        for offset in range(self.length):
            idx = (start + offset) % self.length
            if self.records[idx].definition.matches(step):
                return idx
        return self.pos

    def record_step(self, step: StepRecord) -> "ScienceGenerator":
        """Account for an executed step."""
        if step.is_acquisition_sequence:
            return self

        records = self.records
        if self.last_atom_id is None:
            pos = self._advance_pos(0, step)
        elif step.atom_id == self.last_atom_id:
            pos = self.pos
        else:
            records = tuple(r.settle() for r in records)
            pos = self._advance_pos(self.pos + 1, step)

        if step.step_type in (StepType.GCAL, StepType.SCIENCE):
            records = tuple(
                r.record(step) if idx == pos else r.settle() for idx, r in enumerate(records)
            )

        return replace(self, records=records, pos=pos, last_atom_id=step.atom_id)


# ============================================================================
# INSTANTIATION
# ============================================================================


def calibration_config(
    config: LongSlitConfig, planner: PlannerConfig = DEFAULT_CONFIG
) -> LongSlitConfig:
    """Collapse dithers and offsets for calibration observations.

    Dithers survive only if one of them exceeds the configured fraction of
    the grating coverage; spatial offsets are always zeroed.
    """
    limit = config.coverage * planner.spectrophotometric_dither_fraction
    if any(abs(d) > limit for d in config.wavelength_dithers):
        dithers = tuple(config.wavelength_dithers)
    else:
        dithers = (0,)
    return config.with_explicit(explicit_wavelength_dithers=dithers, explicit_spatial_offsets=(0,))


def instantiate(
    config: LongSlitConfig,
    integration: IntegrationTime,
    calibration_role: Optional[CalibrationRole] = None,
    expander: Optional[SmartGcalExpander] = None,
    planner: PlannerConfig = DEFAULT_CONFIG,
    observation_id: Optional[str] = None,
) -> ScienceGenerator:
    """Create a science generator for ``config``.

    Raises
    ------
    SequenceUnavailable
        If the exposure time is not positive or exceeds the science period,
        if no exposures are requested, or for an unsupported calibration role.
    """

    def unavailable(reason: str) -> SequenceUnavailable:
        logger.info("Science sequence unavailable: %s", reason)
        return SequenceUnavailable(reason, observation_id)

    def checked(time: IntegrationTime) -> IntegrationTime:
        if time.exposure_time <= timedelta(0):
            raise unavailable("GMOS Long Slit science requires a positive exposure time.")
        return time

    if calibration_role is None:
        config_, time = config, checked(integration)
    elif calibration_role is CalibrationRole.SPECTROPHOTOMETRIC:
        config_ = calibration_config(config, planner)
        time = replace(checked(integration), exposure_count=len(config_.wavelength_dithers))
    elif calibration_role is CalibrationRole.TWILIGHT:
        config_ = calibration_config(config, planner)
        time = IntegrationTime(planner.twilight_exposure_time, len(config_.wavelength_dithers))
    else:
        raise unavailable(f"GMOS Long Slit {calibration_role.tag} not implemented")

    if time.exposure_count == 0:
        raise unavailable("ITC prescribes 0 exposures.")

    if time.exposure_time > planner.science_period:
        minutes = int(planner.science_period.total_seconds() // 60)
        raise unavailable(f"Exposure times over {minutes} minutes are not supported.")

    expander = expander if expander is not None else TableGcalExpander()
    try:
        definitions = compute_block_definitions(
            config_.accessors, expander, config_, time, calibration_role, planner
        )
    except SequenceUnavailable as exc:
        raise unavailable(exc.reason) from exc

    records = tuple(
        BlockRecord(definition, cal_validity_period=planner.cal_validity_period)
        for definition in definitions
    )
    return ScienceGenerator(time, records, planner=planner)


__all__ = [
    "Adjustment",
    "BlockDefinition",
    "BlockRecord",
    "BlockWindow",
    "Goal",
    "ScienceGenerator",
    "calibration_config",
    "compute_block_definitions",
    "instantiate",
    "setup_ops",
]
