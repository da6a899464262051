"""Contiguous, value-tagged interval maps over an ordered time axis.

A :class:`CoverageMap` partitions a single interval (its *coverage*) into
touching, non-overlapping sub-intervals, each tagged with a value.  Adjacent
sub-intervals never carry equal values; they are always coalesced.

Every editing operation returns a new map.  Edits that would break the
contiguity of the coverage return ``None`` instead of raising, so callers can
treat them as "retry with corrected input".

Intervals are half-open, ``[start, end)``.  Any totally ordered type may be
used for the endpoints (ints, ``datetime`` values, microsecond timestamps).
"""

from __future__ import annotations

from typing import (
    Any,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

V = TypeVar("V")


class Interval(NamedTuple):
    """Half-open interval ``[start, end)``.

    Being a named tuple, an ``Interval`` compares equal to the plain tuple
    ``(start, end)``.  Use :meth:`between` to build one from unvalidated
    endpoints.
    """

    start: Any
    end: Any

    @classmethod
    def between(cls, start: Any, end: Any) -> "Interval":
        """Return the interval from ``start`` to ``end``.

        Raises
        ------
        ValueError
            If ``end`` precedes ``start``.
        """
        if end < start:
            raise ValueError(f"Interval end {end!r} precedes start {start!r}")
        return cls(start, end)

    @property
    def is_empty(self) -> bool:
        return not self.start < self.end

    def abuts(self, other: "Interval") -> bool:
        """True if the intervals touch at exactly one endpoint."""
        return self.end == other.start or other.end == self.start

    def overlaps(self, other: "Interval") -> bool:
        """True if the intervals share at least one point."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def contains_point(self, point: Any) -> bool:
        return self.start <= point < self.end

    def intersect(self, other: "Interval") -> Optional["Interval"]:
        """Return the overlapping portion, or ``None`` if there is none."""
        if not self.overlaps(other):
            return None
        return Interval(max(self.start, other.start), min(self.end, other.end))

    def span(self, other: "Interval") -> "Interval":
        """Smallest interval containing both."""
        return Interval(min(self.start, other.start), max(self.end, other.end))


IntervalLike = Union[Interval, Tuple[Any, Any]]
Entry = Tuple[Interval, V]


def _as_interval(value: IntervalLike) -> Interval:
    if isinstance(value, Interval):
        return Interval.between(value.start, value.end)
    start, end = value
    return Interval.between(start, end)


def _coalesce(entries: Iterable[Entry]) -> List[Entry]:
    """Merge touching neighbours that carry equal values.

    ``entries`` must already be sorted and contiguous.
    """
    merged: List[Entry] = []
    for interval, value in entries:
        if merged and merged[-1][1] == value and merged[-1][0].end == interval.start:
            previous, _ = merged[-1]
            merged[-1] = (Interval(previous.start, interval.end), value)
        else:
            merged.append((interval, value))
    return merged


class CoverageMap(Generic[V]):
    """Immutable map from contiguous time intervals to values."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        # Trusted constructor; callers outside this module should use
        # ``from_entries`` which validates contiguity.
        self._entries: Tuple[Entry, ...] = tuple(entries)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> "CoverageMap[V]":
        return cls(())

    @classmethod
    def from_entries(
        cls,
        entries: Union[Mapping[IntervalLike, V], Iterable[Tuple[IntervalLike, V]]],
    ) -> Optional["CoverageMap[V]"]:
        """Build a map from ``(interval, value)`` pairs.

        The pairs may arrive in any order.  Returns ``None`` when, once
        sorted, the intervals leave a gap or overlap.
        """
        if isinstance(entries, Mapping):
            pairs = list(entries.items())
        else:
            pairs = list(entries)

        normalized = [(_as_interval(interval), value) for interval, value in pairs]
        normalized = [(i, v) for i, v in normalized if not i.is_empty]
        normalized.sort(key=lambda entry: (entry[0].start, entry[0].end))

        for (left, _), (right, _) in zip(normalized, normalized[1:]):
            if left.end != right.start:
                return None

        return cls(_coalesce(normalized))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def coverage(self) -> Optional[Interval]:
        """Union of all intervals, or ``None`` for the empty map."""
        if not self._entries:
            return None
        return Interval(self._entries[0][0].start, self._entries[-1][0].end)

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    @property
    def intervals(self) -> List[Interval]:
        return [interval for interval, _ in self._entries]

    @property
    def values(self) -> List[V]:
        return [value for _, value in self._entries]

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def value_at(self, point: Any) -> Optional[V]:
        """Value of the interval containing ``point``, if any."""
        for interval, value in self._entries:
            if interval.contains_point(point):
                return value
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoverageMap):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"({i.start!r}, {i.end!r}): {v!r}" for i, v in self._entries)
        return f"CoverageMap({{{body}}})"

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add(self, interval: IntervalLike, value: V) -> Optional["CoverageMap[V]"]:
        """Return a map with ``interval`` set to ``value``.

        Existing entries under ``interval`` are overwritten.  Returns ``None``
        if ``interval`` neither overlaps nor abuts the current coverage.
        """
        interval = _as_interval(interval)
        if interval.is_empty:
            return self

        coverage = self.coverage
        if coverage is None:
            return CoverageMap([(interval, value)])
        if not (coverage.overlaps(interval) or coverage.abuts(interval)):
            return None

        kept: List[Entry] = []
        for existing, existing_value in self._entries:
            if existing.start < interval.start:
                kept.append(
                    (Interval(existing.start, min(existing.end, interval.start)), existing_value)
                )
            if existing.end > interval.end:
                kept.append(
                    (Interval(max(existing.start, interval.end), existing.end), existing_value)
                )
        kept.append((interval, value))
        kept.sort(key=lambda entry: entry[0].start)
        return CoverageMap(_coalesce(kept))

    def union(self, other: "CoverageMap[V]") -> Optional["CoverageMap[V]"]:
        """Merge two maps.

        Abutting coverages always merge.  Overlapping coverages merge only
        when both maps assign the same values throughout the overlap.
        Disjoint coverages cannot be merged and yield ``None``.
        """
        mine, theirs = self.coverage, other.coverage
        if mine is None:
            return other
        if theirs is None:
            return self

        overlap = mine.intersect(theirs)
        if overlap is None:
            if not mine.abuts(theirs):
                return None
        elif self.slice(overlap) != other.slice(overlap):
            return None

        outside: List[Entry] = []
        for interval, value in other:
            if interval.start < mine.start:
                outside.append((Interval(interval.start, min(interval.end, mine.start)), value))
            if interval.end > mine.end:
                outside.append((Interval(max(interval.start, mine.end), interval.end), value))

        return CoverageMap.from_entries(list(self._entries) + outside)

    def slice(self, window: IntervalLike) -> "CoverageMap[V]":
        """Restrict the map to ``window``, clipping boundary intervals."""
        window = _as_interval(window)
        clipped: List[Entry] = []
        for interval, value in self._entries:
            part = interval.intersect(window)
            if part is not None:
                clipped.append((part, value))
        return CoverageMap(clipped)

    def find_missing_intervals(self, window: IntervalLike) -> List[Interval]:
        """Portions of ``window`` that this map does not cover.

        A window that lies entirely before or after the coverage produces a
        single interval reaching from the window to the nearest coverage
        edge, so that adding the result back yields a contiguous map that
        spans the window.
        """
        window = _as_interval(window)
        if window.is_empty:
            return []

        coverage = self.coverage
        if coverage is None:
            return [window]

        missing: List[Interval] = []
        if window.start < coverage.start:
            missing.append(Interval(window.start, coverage.start))
        if window.end > coverage.end:
            missing.append(Interval(coverage.end, window.end))
        return missing


__all__ = ["CoverageMap", "Interval"]
