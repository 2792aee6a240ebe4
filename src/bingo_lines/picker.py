"""Frequency-weighted number selection."""

from __future__ import annotations

import bisect
from itertools import accumulate
from typing import List, Sequence

from .errors import InternalInconsistencyError
from .frequency import FrequencyTracker
from .rng import RandomSource


def number_weight(count: int) -> float:
    return 1.0 / (count + 1)


class WeightedPicker:
    """Draws numbers with probability inversely proportional to prior usage.

    A number used ``c`` times so far in the attempt has weight ``1 / (c + 1)``,
    so under-used numbers are favoured and the batch drifts towards an even
    distribution. The random source is injected so a fixed seed reproduces
    every draw.
    """

    def __init__(self, rng: RandomSource):
        self.rng = rng

    def pick(self, pool: Sequence[int], tracker: FrequencyTracker) -> int:
        if not pool:
            raise InternalInconsistencyError("Cannot pick from an empty pool")
        cumulative = list(accumulate(number_weight(tracker.count(x)) for x in pool))
        target = self.rng.random() * cumulative[-1]
        idx = bisect.bisect_right(cumulative, target)
        # random() can return values that round onto the last boundary
        return pool[min(idx, len(pool) - 1)]

    def draw(self, pool: Sequence[int], tracker: FrequencyTracker, k: int) -> List[int]:
        """Pick ``k`` distinct numbers in draw order, without replacement."""
        if k > len(pool):
            raise InternalInconsistencyError(
                f"Cannot draw {k} distinct numbers from a pool of {len(pool)}"
            )
        remaining = list(pool)
        chosen: List[int] = []
        for _ in range(k):
            x = self.pick(remaining, tracker)
            remaining.remove(x)
            chosen.append(x)
        return chosen
