from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .feasibility import compute_near_uniform_targets
from .report import usage_variance
from .uniqueness import line_sets_by_family, matrix_hash

FAMILIES = ("rows", "cols", "diags")


@dataclass
class UniquenessReport:
    lines_checked: int
    collisions_by_family: Dict[str, int]
    total_collisions: int


def compute_frequencies(
    cards: Sequence[Sequence[Sequence[int]]], *, min_num: int, max_num: int
) -> Dict[int, int]:
    counts: Counter[int] = Counter()
    for card in cards:
        for row in card:
            counts.update(row)
    # ensure all numbers present with 0
    for x in range(min_num, max_num + 1):
        counts.setdefault(x, 0)
    return dict(sorted(counts.items()))


def count_line_collisions(cards: Sequence[Sequence[Sequence[int]]]) -> UniquenessReport:
    """Collisions within each family and across all ten lines of every card."""
    per_family: Dict[str, Counter] = {f: Counter() for f in FAMILIES}
    everything: Counter = Counter()
    for card in cards:
        for family, lines in line_sets_by_family(card).items():
            per_family[family].update(lines)
            everything.update(lines)
    return UniquenessReport(
        lines_checked=sum(everything.values()),
        collisions_by_family={
            f: sum(c - 1 for c in seen.values() if c > 1) for f, seen in per_family.items()
        },
        total_collisions=sum(c - 1 for c in everything.values() if c > 1),
    )


def check_no_duplicates_within_cards(cards: Sequence[Sequence[Sequence[int]]]) -> bool:
    for card in cards:
        seen = set()
        for row in card:
            for x in row:
                if x in seen:
                    return False
                seen.add(x)
    return True


def check_values_in_range(
    cards: Sequence[Sequence[Sequence[int]]], *, min_num: int, max_num: int
) -> bool:
    return all(min_num <= x <= max_num for card in cards for row in card for x in row)


def check_no_identical_cards(cards: Sequence[Sequence[Sequence[int]]]) -> bool:
    seen = set()
    for card in cards:
        h = matrix_hash(card)
        if h in seen:
            return False
        seen.add(h)
    return True


def chi2_wilson_hilferty_pvalue(stat: float, df: int) -> float:
    if df <= 0:
        return 1.0
    # Wilson-Hilferty approximation: transform chi-square to normal
    t = (stat / df) ** (1.0 / 3.0)
    mu = 1.0 - 2.0 / (9.0 * df)
    sigma = math.sqrt(2.0 / (9.0 * df))
    z = (t - mu) / sigma
    p_right = 1.0 - 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))
    return max(0.0, min(1.0, p_right))


def uniformity_tests(freqs: Dict[int, int], alpha: float = 0.05) -> Dict[str, object]:
    R = len(freqs)
    P = sum(freqs.values())
    if P == 0 or R == 0:
        return {"chi2": {"stat": 0.0, "df": 0, "p_value": 1.0}, "alpha": alpha}
    expected = P / R
    stat = sum((c - expected) ** 2 / expected for c in freqs.values())
    df = max(R - 1, 1)
    p = chi2_wilson_hilferty_pvalue(stat, df)
    return {
        "chi2": {"stat": round(stat, 6), "df": df, "p_value": round(p, 6)},
        "alpha": alpha,
        "engine": "wilson_hilferty",
    }


def verify(
    cards: Sequence[Sequence[Sequence[int]]], *, min_num: int, max_num: int
) -> Dict[str, object]:
    """Independent audit of a finished batch; does not trust the generator."""
    freqs = compute_frequencies(cards, min_num=min_num, max_num=max_num)
    uniq = count_line_collisions(cards)
    base, remainder = compute_near_uniform_targets(
        num_cards=len(cards), min_num=min_num, max_num=max_num
    )
    ok_no_dupes = check_no_duplicates_within_cards(cards)
    ok_in_range = check_values_in_range(cards, min_num=min_num, max_num=max_num)
    ok_no_identicals = check_no_identical_cards(cards)
    return {
        "frequencies": freqs,
        "uniqueness": {
            "lines_checked": uniq.lines_checked,
            "collisions_by_family": uniq.collisions_by_family,
            "total_collisions": uniq.total_collisions,
            "set_representation": "sorted_tuple",
        },
        "uniformity": {
            "target_base": base,
            "target_remainder": remainder,
            "max_minus_min": max(freqs.values()) - min(freqs.values()) if freqs else 0,
            "variance": round(usage_variance(freqs), 6),
        },
        "tests": {"global": uniformity_tests(freqs)},
        "ok_no_duplicates_within_cards": ok_no_dupes,
        "ok_values_in_range": ok_in_range,
        "ok_no_identical_cards": ok_no_identicals,
        "ok": ok_no_dupes and ok_in_range and ok_no_identicals and uniq.total_collisions == 0,
    }


def failed_checks(report: Dict[str, object]) -> List[str]:
    names = ["ok_no_duplicates_within_cards", "ok_values_in_range", "ok_no_identical_cards"]
    failed = [n for n in names if not report.get(n)]
    uniq = report.get("uniqueness", {})
    if isinstance(uniq, dict) and uniq.get("total_collisions"):
        failed.append("line_collisions")
    return failed
