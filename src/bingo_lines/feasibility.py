from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

LINES_PER_CARD = 10
LINE_SIZE = 4


@dataclass
class Feasibility:
    feasible: bool
    reasons: List[str]


def line_capacity(*, min_num: int, max_num: int) -> int:
    """Number of distinct 4-number lines the range can supply."""
    return math.comb(max_num - min_num + 1, LINE_SIZE)


def check_line_capacity(*, num_cards: int, min_num: int, max_num: int) -> Feasibility:
    """Upper bound check: every line in the batch needs its own 4-set."""
    needed = LINES_PER_CARD * num_cards
    capacity = line_capacity(min_num=min_num, max_num=max_num)
    if needed <= capacity:
        return Feasibility(feasible=True, reasons=[])
    return Feasibility(
        feasible=False,
        reasons=[f"line capacity exceeded: {needed} lines needed > C(R,4) = {capacity}"],
    )


def compute_near_uniform_targets(*, num_cards: int, min_num: int, max_num: int) -> tuple[int, int]:
    """Ideal per-number usage: (base, remainder) of placements over the range."""
    placements = num_cards * LINE_SIZE * LINE_SIZE
    return divmod(placements, max_num - min_num + 1)
