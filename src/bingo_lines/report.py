from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple


def usage_variance(frequencies: Mapping[int, int]) -> float:
    """Population variance of usage counts; unused numbers must be present as 0."""
    if not frequencies:
        return 0.0
    values = list(frequencies.values())
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


@dataclass
class DistributionReport:
    """Per-number usage table of the winning attempt, for display."""

    min_num: int
    max_num: int
    entries: List[Tuple[int, int]]

    @classmethod
    def from_frequencies(
        cls, frequencies: Mapping[int, int], *, min_num: int, max_num: int
    ) -> "DistributionReport":
        entries = [(x, int(frequencies.get(x, 0))) for x in range(min_num, max_num + 1)]
        return cls(min_num=min_num, max_num=max_num, entries=entries)

    @property
    def total(self) -> int:
        return sum(c for _x, c in self.entries)

    def summary(self) -> Dict[str, float]:
        counts = [c for _x, c in self.entries]
        lo, hi = min(counts), max(counts)
        return {
            "total": self.total,
            "min": lo,
            "max": hi,
            "spread": hi - lo,
            "mean": round(self.total / len(counts), 6),
            "variance": round(usage_variance(dict(self.entries)), 6),
        }
