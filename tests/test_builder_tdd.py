from __future__ import annotations

import time

import pytest

from bingo_lines.core.builder import (
    AttemptOutcome,
    BatchGenerator,
    BuildParams,
    Card,
    run_attempt,
    select_best,
)
from bingo_lines.errors import GenerationTimeoutError, InfeasibleConstraintError
from bingo_lines.uniqueness import winning_lines_of_card


def ok(index, variance):
    return AttemptOutcome(index=index, cards=[Card(id=1, cells=[])], variance=variance)


def test_lowest_variance_wins():
    best = select_best([ok(0, 3.0), ok(1, 1.5), ok(2, 2.0)])
    assert best is not None and best.index == 1


def test_ties_keep_first_found():
    best = select_best([ok(2, 1.0), ok(0, 1.0), ok(1, 4.0)])
    assert best is not None and best.index == 0


def test_failed_attempts_are_skipped():
    failed = AttemptOutcome(index=0, failure="card 3 exhausted")
    best = select_best([failed, ok(1, 9.0)])
    assert best is not None and best.index == 1
    assert select_best([failed]) is None


def test_early_stop_keeps_first_attempt_under_threshold():
    outcomes = [ok(0, 5.0), ok(1, 1.9), ok(2, 0.5)]
    best = select_best(outcomes, early_stop_variance=2.0)
    assert best is not None and best.index == 1


def test_attempt_is_reproducible_and_scored_over_whole_range():
    params = BuildParams(num_cards=5, min_num=1, max_num=40, seed=11)
    a = run_attempt(params, 0)
    b = run_attempt(params, 0)
    assert a.succeeded
    assert [c.cells for c in a.cards] == [c.cells for c in b.cards]
    assert sorted(a.frequencies) == list(range(1, 41))
    assert sum(a.frequencies.values()) == 80
    # 80 placements over 40 numbers leaves some numbers unused or doubled
    assert a.variance == pytest.approx(
        sum((v - 2.0) ** 2 for v in a.frequencies.values()) / 40
    )


def test_batch_has_globally_unique_lines():
    result = BatchGenerator(BuildParams(num_cards=25, min_num=1, max_num=25, seed=3)).generate()
    assert [c.id for c in result.cards] == list(range(1, 26))
    lines = [line for card in result.cards for line in winning_lines_of_card(card.cells)]
    assert len(lines) == 250
    assert len(set(lines)) == 250
    assert result.metrics.attempts_run == 10
    assert 0 <= result.attempt < 10


def test_capacity_violation_fails_before_any_attempt():
    params = BuildParams(num_cards=200, min_num=1, max_num=16, seed=1)
    with pytest.raises(InfeasibleConstraintError) as info:
        BatchGenerator(params).generate()
    assert "reasons" in info.value.details


def test_exhausted_retries_across_all_attempts_is_infeasible():
    params = BuildParams(
        num_cards=100, min_num=1, max_num=16, seed=1, max_attempts=3, max_card_retries=1
    )
    with pytest.raises(InfeasibleConstraintError) as info:
        BatchGenerator(params).generate()
    assert "3 attempts" in info.value.message


def test_attempt_past_deadline_is_abandoned():
    params = BuildParams(num_cards=10, min_num=1, max_num=30, seed=1, timeout_sec=0.5)
    outcome = run_attempt(params, 0, deadline=time.monotonic() - 1.0)
    assert outcome.timed_out
    assert outcome.cards is None


def test_timed_out_attempt_fails_the_batch(monkeypatch):
    params = BuildParams(num_cards=10, min_num=1, max_num=30, seed=1, timeout_sec=0.5)
    monkeypatch.setattr(
        "bingo_lines.core.builder.run_attempt",
        lambda p, index, deadline=None: AttemptOutcome(index=index, failure="late", timed_out=True),
    )
    with pytest.raises(GenerationTimeoutError):
        BatchGenerator(params).generate()


def test_parallel_attempts_match_sequential():
    base = dict(num_cards=6, min_num=1, max_num=30, seed=77, max_attempts=4)
    sequential = BatchGenerator(BuildParams(**base)).generate()
    parallel = BatchGenerator(BuildParams(parallel=True, parallelism=2, **base)).generate()
    assert parallel.attempt == sequential.attempt
    assert [c.cells for c in parallel.cards] == [c.cells for c in sequential.cards]
    assert parallel.variance == sequential.variance
