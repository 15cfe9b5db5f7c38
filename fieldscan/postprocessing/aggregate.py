"""Majority voting over a sliding window of raw field readings."""
from __future__ import annotations
import math
from collections import Counter, deque
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Tuple

from fieldscan.types.fields import FieldKind

DEFAULT_HISTORY_CAP = 20
DEFAULT_MIN_SUPPORT = 3


class CandidateHistory:
    """Bounded, append-only readings per field (oldest evicted first)"""

    def __init__(self, cap: int = DEFAULT_HISTORY_CAP):
        if cap < 1:
            raise ValueError("History cap must be positive")
        self.cap = cap
        self._values: Dict[FieldKind, Deque[str]] = {}

    def push(self, kind: FieldKind, value: str) -> None:
        self._values.setdefault(kind, deque(maxlen=self.cap)).append(value)

    def extend(self, kind: FieldKind, values: Iterable[str]) -> None:
        for v in values:
            self.push(kind, v)

    def values(self, kind: FieldKind) -> List[str]:
        return list(self._values.get(kind, ()))

    def kinds(self) -> List[FieldKind]:
        return [k for k, v in self._values.items() if v]

    def reset(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return sum(len(v) for v in self._values.values())


def tally(values: Sequence[str]) -> List[Tuple[str, int]]:
    """Distinct values ranked by count; equal counts rank most-recently-seen first"""
    counts = Counter(values)
    last_seen = {v: i for i, v in enumerate(values)}
    return sorted(counts.items(), key=lambda kv: (-kv[1], -last_seen[kv[0]]))


def resolve(
    values: Sequence[str], min_support: int = DEFAULT_MIN_SUPPORT
) -> Optional[Tuple[str, int]]:
    """Return ``(value, count)`` for a strict majority leader with enough support.

    A tie at the top count is not a confirmation.
    """
    ranked = tally(values)
    if not ranked:
        return None
    value, count = ranked[0]
    if count < min_support:
        return None
    if len(ranked) > 1 and ranked[1][1] == count:
        return None
    return value, count


def confidence(values: Sequence[str]) -> int:
    """0..100 score rewarding both agreement ratio and sample count (saturates at 5)"""
    if not values:
        return 0
    max_count = max(Counter(values).values())
    consistency = max_count / len(values)
    # half-up rounding, 12.5 -> 13
    return min(100, int(math.floor(consistency * 100 * min(len(values), 5) / 5 + 0.5)))
