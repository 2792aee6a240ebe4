from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, Optional


class FrequencyTracker:
    """Per-attempt usage counts for every number placed on a committed card."""

    def __init__(self, numbers: Optional[Iterable[int]] = None):
        self._counts: Counter[int] = Counter()
        self._numbers = list(numbers) if numbers is not None else None

    def increment(self, number: int) -> None:
        self._counts[number] += 1

    def increment_all(self, numbers: Iterable[int]) -> None:
        for x in numbers:
            self.increment(x)

    def count(self, number: int) -> int:
        return self._counts.get(number, 0)

    def total(self) -> int:
        return sum(self._counts.values())

    def snapshot(self) -> Dict[int, int]:
        # zero-use numbers are listed when the tracker knows its range
        if self._numbers is None:
            return dict(sorted(self._counts.items()))
        return {x: self._counts.get(x, 0) for x in self._numbers}
