"""Greedy, order-stable countdown of items still to be emitted.

:class:`Remaining` tracks how many more instances of each key are required.
``take(n)`` pulls keys one at a time, always choosing a key with the greatest
remaining count. Keys are interleaved as their counts level out, but a heavy
key may still run ahead of its proportional share early in the output.

Ties on the remaining count go first to the key used least so far, then to
the order in which keys were first supplied.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Generic, Hashable, Iterable, Iterator, List, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)


class Remaining(Mapping, Generic[K]):
    """Immutable mapping of key to remaining (non-negative) count.

    Each key also carries the number of times it has been used since the
    instance was created; that count only matters for breaking ties in
    :meth:`take`.
    """

    __slots__ = ("_order", "_goal", "_used")

    def __init__(self, goals: Dict[K, int], used: Dict[K, int] | None = None) -> None:
        for key, count in goals.items():
            if count < 0:
                raise ValueError(f"Remaining count for {key!r} must be non-negative, got {count}")
        self._order: Tuple[K, ...] = tuple(goals)
        self._goal: Dict[K, int] = dict(goals)
        self._used: Dict[K, int] = {key: 0 for key in self._order}
        if used:
            self._used.update({k: v for k, v in used.items() if k in self._goal})

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[K, int]]) -> "Remaining[K]":
        """Build from ``(key, count)`` pairs.

        Duplicate keys have their counts summed; the position of the first
        occurrence fixes the key's place in the tie-break order.
        """
        sums: Dict[K, int] = {}
        for key, count in pairs:
            sums[key] = sums.get(key, 0) + count
        return cls(sums)

    @classmethod
    def empty(cls) -> "Remaining[K]":
        return cls({})

    # Mapping interface ------------------------------------------------

    def __getitem__(self, key: K) -> int:
        return max(self._goal[key] - self._used[key], 0)

    def __iter__(self) -> Iterator[K]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        body = ", ".join(f"{k!r}: {self[k]}" for k in self._order)
        return f"Remaining({{{body}}})"

    # ------------------------------------------------------------------

    @property
    def total(self) -> int:
        """Remaining items summed across all keys."""
        return sum(self[key] for key in self._order)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def used(self, key: K) -> int:
        """How many times ``key`` has been consumed."""
        return self._used[key]

    def decrement(self, key: K, n: int = 1) -> "Remaining[K]":
        """Mark ``n`` uses of ``key``.  Unknown keys are ignored."""
        return self.decrement_all({key: n})

    def decrement_all(self, uses: Mapping[K, int]) -> "Remaining[K]":
        used = dict(self._used)
        for key, n in uses.items():
            if key in used:
                used[key] += max(n, 0)
        return Remaining(self._goal, used)

    def _pick(self) -> K | None:
        best = None
        best_rank = None
        for position, key in enumerate(self._order):
            count = self[key]
            if count <= 0:
                continue
            rank = (-count, self._used[key], position)
            if best_rank is None or rank < best_rank:
                best, best_rank = key, rank
        return best

    def take(self, n: int) -> Tuple[List[K], "Remaining[K]"]:
        """Emit up to ``n`` keys, most prevalent first.

        Returns the emitted keys in pick order together with the updated
        remainder.  When every count reaches zero before ``n`` picks, the
        output is simply shorter than requested.
        """
        picked: List[K] = []
        used = dict(self._used)
        current = self
        for _ in range(max(n, 0)):
            key = current._pick()
            if key is None:
                break
            picked.append(key)
            used[key] += 1
            current = Remaining(self._goal, used)
        return picked, current

    def counts(self) -> Dict[K, int]:
        return {key: self[key] for key in self._order}


__all__ = ["Remaining"]
