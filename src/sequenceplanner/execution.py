"""Recorded step execution and re-planning gaps.

A :class:`StepRecord` describes one step that the telescope actually ran.
:class:`ExecutionTimeline` lays the recorded intervals onto a
:class:`~sequenceplanner.coverage.CoverageMap`, filling the time between
steps with ``None`` so that the map stays contiguous.  The timeline then
answers which portions of a planning window still need (re)planning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Generic, Iterable, List, Optional, Tuple, TypeVar

from .coverage import CoverageMap, Interval, IntervalLike
from .enums import SequenceType, StepExecutionState, StepType
from .model import ProtoStep

logger = logging.getLogger(__name__)

D = TypeVar("D")

_INCOMPLETE = frozenset(
    {
        StepExecutionState.ONGOING,
        StepExecutionState.ABORTED,
        StepExecutionState.STOPPED,
        StepExecutionState.ABANDONED,
    }
)


@dataclass(frozen=True)
class StepRecord(Generic[D]):
    """A step as executed, with its timing and outcome."""

    id: str
    atom_id: str
    visit_id: str
    proto_step: ProtoStep[D]
    sequence_type: SequenceType
    interval: Interval
    state: StepExecutionState = StepExecutionState.COMPLETED

    @property
    def created(self) -> Any:
        return self.interval.start

    @property
    def successfully_completed(self) -> bool:
        return self.state is StepExecutionState.COMPLETED

    @property
    def is_acquisition_sequence(self) -> bool:
        return self.sequence_type is SequenceType.ACQUISITION

    @property
    def is_science_sequence(self) -> bool:
        return self.sequence_type is SequenceType.SCIENCE

    @property
    def step_type(self) -> StepType:
        return self.proto_step.step_type

    @property
    def is_science(self) -> bool:
        return self.proto_step.is_science

    @property
    def is_gcal(self) -> bool:
        return self.proto_step.is_gcal


TimelineValue = Optional[StepExecutionState]


class ExecutionTimeline:
    """Contiguous record of execution states over time.

    ``None`` marks time in which nothing was recorded.
    """

    def __init__(self, coverage: Optional[CoverageMap[TimelineValue]] = None) -> None:
        self._coverage: CoverageMap[TimelineValue] = (
            coverage if coverage is not None else CoverageMap.empty()
        )

    @classmethod
    def from_intervals(
        cls, entries: Iterable[Tuple[IntervalLike, StepExecutionState]]
    ) -> Optional["ExecutionTimeline"]:
        """Build a timeline from ``(interval, state)`` pairs.

        Returns ``None`` if two recorded intervals overlap.
        """
        ordered = sorted(
            ((Interval.between(*interval), state) for interval, state in entries),
            key=lambda entry: entry[0].start,
        )
        filled: List[Tuple[Interval, TimelineValue]] = []
        for interval, state in ordered:
            if filled:
                previous_end = filled[-1][0].end
                if interval.start < previous_end:
                    logger.debug("Overlapping execution record at %s", interval)
                    return None
                if interval.start > previous_end:
                    filled.append((Interval(previous_end, interval.start), None))
            filled.append((interval, state))

        coverage = CoverageMap.from_entries(filled)
        return None if coverage is None else cls(coverage)

    @classmethod
    def from_records(cls, records: Iterable[StepRecord]) -> Optional["ExecutionTimeline"]:
        return cls.from_intervals((r.interval, r.state) for r in records)

    @property
    def coverage(self) -> CoverageMap[TimelineValue]:
        return self._coverage

    def record(self, interval: IntervalLike, state: StepExecutionState) -> "ExecutionTimeline":
        """Return a timeline with ``interval`` recorded as ``state``.

        Later records overwrite earlier ones.  Time between the existing
        coverage and a detached new interval is filled as unrecorded.
        """
        interval = Interval.between(*interval)
        coverage = self._coverage
        span = coverage.coverage
        if span is not None:
            if interval.end < span.start:
                coverage = coverage.add((interval.end, span.start), None)
            elif interval.start > span.end:
                coverage = coverage.add((span.end, interval.start), None)
        updated = coverage.add(interval, state) if coverage is not None else None
        if updated is None:
            raise RuntimeError(f"Could not record {interval} on {self._coverage!r}")
        return ExecutionTimeline(updated)

    def unrecorded(self, window: IntervalLike) -> List[Interval]:
        """Parts of ``window`` with no execution recorded."""
        window = Interval.between(*window)
        idle = [i for i, v in self._coverage.slice(window) if v is None]
        missing = [
            part
            for part in (m.intersect(window) for m in self._coverage.find_missing_intervals(window))
            if part is not None
        ]
        return _merge(idle + missing)

    def incomplete(self, window: IntervalLike) -> List[Interval]:
        """Parts of ``window`` whose steps did not finish successfully."""
        return [i for i, v in self._coverage.slice(window) if v in _INCOMPLETE]

    def replan_windows(self, window: IntervalLike) -> List[Interval]:
        """Everything in ``window`` that still needs to be planned."""
        return _merge(self.unrecorded(window) + self.incomplete(window))

    def time_in(self, state: TimelineValue) -> timedelta:
        """Total recorded duration in ``state``.

        Only meaningful when endpoints are ``datetime`` values.
        """
        total = timedelta(0)
        for interval, value in self._coverage:
            if value == state:
                total += interval.end - interval.start
        return total

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExecutionTimeline):
            return NotImplemented
        return self._coverage == other._coverage

    def __repr__(self) -> str:
        return f"ExecutionTimeline({self._coverage!r})"


def _merge(intervals: List[Interval]) -> List[Interval]:
    merged: List[Interval] = []
    for interval in sorted(intervals):
        if merged and merged[-1].end >= interval.start:
            merged[-1] = merged[-1].span(interval)
        else:
            merged.append(interval)
    return merged


__all__ = ["ExecutionTimeline", "StepRecord"]
