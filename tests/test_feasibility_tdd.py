from __future__ import annotations

import math

from hypothesis import given, strategies as st

from bingo_lines.feasibility import (
    check_line_capacity,
    compute_near_uniform_targets,
    line_capacity,
)


@given(
    num_cards=st.integers(min_value=1, max_value=500),
    min_num=st.integers(min_value=-100, max_value=100),
    span=st.integers(min_value=4, max_value=90),
)
def test_line_capacity_property(num_cards, min_num, span):
    max_num = min_num + span - 1
    result = check_line_capacity(num_cards=num_cards, min_num=min_num, max_num=max_num)
    assert result.feasible == (10 * num_cards <= math.comb(span, 4))
    assert bool(result.reasons) != result.feasible


def test_smallest_range_still_fits_a_full_batch():
    assert line_capacity(min_num=1, max_num=16) == 1820
    assert check_line_capacity(num_cards=100, min_num=1, max_num=16).feasible


def test_near_uniformity_targets_example():
    base, remainder = compute_near_uniform_targets(num_cards=30, min_num=1, max_num=30)
    assert (base, remainder) == (16, 0)
    base, remainder = compute_near_uniform_targets(num_cards=3, min_num=1, max_num=20)
    assert (base, remainder) == (2, 8)
