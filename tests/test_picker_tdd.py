from __future__ import annotations

from collections import Counter

import pytest

from bingo_lines.errors import InternalInconsistencyError
from bingo_lines.frequency import FrequencyTracker
from bingo_lines.picker import WeightedPicker, number_weight
from bingo_lines.rng import create_rng


def test_tracker_counts_and_snapshot_include_unused_numbers():
    tracker = FrequencyTracker(range(1, 6))
    tracker.increment(2)
    tracker.increment_all([2, 3])
    assert tracker.count(2) == 2
    assert tracker.count(5) == 0
    assert tracker.total() == 3
    assert tracker.snapshot() == {1: 0, 2: 2, 3: 1, 4: 0, 5: 0}


def test_tracker_without_range_snapshots_used_numbers_only():
    tracker = FrequencyTracker()
    tracker.increment_all([7, 3, 7])
    assert tracker.snapshot() == {3: 1, 7: 2}


def test_weight_formula():
    assert number_weight(0) == 1.0
    assert number_weight(3) == 0.25


def test_same_seed_same_draws():
    pool = list(range(1, 31))
    a = WeightedPicker(create_rng("py_random", 99)).draw(pool, FrequencyTracker(pool), 16)
    b = WeightedPicker(create_rng("py_random", 99)).draw(pool, FrequencyTracker(pool), 16)
    assert a == b


def test_draw_is_without_replacement():
    pool = list(range(10, 26))
    picked = WeightedPicker(create_rng("py_random", 7)).draw(pool, FrequencyTracker(pool), 16)
    assert sorted(picked) == pool


def test_pick_only_returns_pool_members():
    picker = WeightedPicker(create_rng("py_random", 3))
    tracker = FrequencyTracker()
    for _ in range(200):
        assert picker.pick([4, 8, 15], tracker) in {4, 8, 15}


def test_under_used_numbers_are_favoured():
    pool = [1, 2]
    tracker = FrequencyTracker(pool)
    for _ in range(9):
        tracker.increment(1)
    picker = WeightedPicker(create_rng("py_random", 2024))
    picks = Counter(picker.pick(pool, tracker) for _ in range(2000))
    # weights are 1/10 vs 1/1, so number 2 should dominate
    assert picks[2] > 4 * picks[1]


def test_empty_pool_is_inconsistent():
    picker = WeightedPicker(create_rng("py_random", 1))
    with pytest.raises(InternalInconsistencyError):
        picker.pick([], FrequencyTracker())
    with pytest.raises(InternalInconsistencyError):
        picker.draw([1, 2], FrequencyTracker(), 3)
