"""Best-of-K batch generation."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..errors import (
    CardRetryExhaustedError,
    GenerationTimeoutError,
    InfeasibleConstraintError,
    InternalInconsistencyError,
)
from ..feasibility import LINES_PER_CARD, check_line_capacity
from ..frequency import FrequencyTracker
from ..picker import WeightedPicker
from ..report import usage_variance
from ..rng import create_rng, derive_parallel_seed
from ..uniqueness import LineRegistry
from .assembler import CELLS_PER_CARD, DEFAULT_MAX_CARD_RETRIES, CardAssembler

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
SEED_PURPOSE = "batch_attempt"


@dataclass
class BuildParams:
    """Parameters for batch generation."""

    num_cards: int
    min_num: int
    max_num: int
    seed: int
    rng_engine: str = "py_random"
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_card_retries: int = DEFAULT_MAX_CARD_RETRIES
    timeout_sec: Optional[float] = None
    early_stop_variance: Optional[float] = None
    parallel: bool = False
    parallelism: int = 1

    @property
    def numbers(self) -> List[int]:
        return list(range(self.min_num, self.max_num + 1))


@dataclass
class Card:
    id: int
    cells: List[List[int]]

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "cells": [list(row) for row in self.cells]}


@dataclass
class AttemptOutcome:
    """What one whole-batch attempt produced. ``cards`` is None on failure."""

    index: int
    cards: Optional[List[Card]] = None
    frequencies: Dict[int, int] = field(default_factory=dict)
    variance: Optional[float] = None
    fills: int = 0
    rejections: int = 0
    failure: Optional[str] = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.cards is not None


@dataclass
class BuildMetrics:
    total_time: float
    attempts_run: int
    attempts_succeeded: int
    card_fills: int
    card_rejections: int


@dataclass
class BatchResult:
    cards: List[Card]
    frequencies: Dict[int, int]
    variance: float
    attempt: int
    metrics: BuildMetrics


def _check_attempt_invariants(
    params: BuildParams, cards: List[Card], tracker: FrequencyTracker, registry: LineRegistry
) -> None:
    for card in cards:
        flat = [x for row in card.cells for x in row]
        if len(set(flat)) != CELLS_PER_CARD:
            raise InternalInconsistencyError(f"Card {card.id} repeats a number", {"cells": card.cells})
        if any(x < params.min_num or x > params.max_num for x in flat):
            raise InternalInconsistencyError(f"Card {card.id} leaves the number range", {"cells": card.cells})
    expected_total = CELLS_PER_CARD * params.num_cards
    if tracker.total() != expected_total:
        raise InternalInconsistencyError(
            "Frequency total does not match placements",
            {"total": tracker.total(), "expected": expected_total},
        )
    expected_lines = LINES_PER_CARD * params.num_cards
    if len(registry) != expected_lines:
        raise InternalInconsistencyError(
            "Registry size does not match committed lines",
            {"lines": len(registry), "expected": expected_lines},
        )


def run_attempt(params: BuildParams, index: int, deadline: Optional[float] = None) -> AttemptOutcome:
    """One attempt from fresh state. Module-level so process pools can pickle it."""
    rng = create_rng(params.rng_engine, derive_parallel_seed(params.seed, index, SEED_PURPOSE))
    numbers = params.numbers
    tracker = FrequencyTracker(numbers)
    registry = LineRegistry()
    assembler = CardAssembler(
        numbers=numbers,
        picker=WeightedPicker(rng),
        registry=registry,
        tracker=tracker,
        max_retries=params.max_card_retries,
        deadline=deadline,
        timeout_sec=params.timeout_sec,
    )
    cards: List[Card] = []
    try:
        for card_id in range(1, params.num_cards + 1):
            cards.append(Card(id=card_id, cells=assembler.assemble(card_id)))
    except CardRetryExhaustedError as exc:
        return AttemptOutcome(
            index=index,
            fills=assembler.total_fills,
            rejections=assembler.rejections,
            failure=exc.message,
        )
    except GenerationTimeoutError as exc:
        return AttemptOutcome(
            index=index,
            fills=assembler.total_fills,
            rejections=assembler.rejections,
            failure=exc.message,
            timed_out=True,
        )

    _check_attempt_invariants(params, cards, tracker, registry)
    frequencies = tracker.snapshot()
    return AttemptOutcome(
        index=index,
        cards=cards,
        frequencies=frequencies,
        variance=usage_variance(frequencies),
        fills=assembler.total_fills,
        rejections=assembler.rejections,
    )


def select_best(
    outcomes: Iterable[AttemptOutcome], early_stop_variance: Optional[float] = None
) -> Optional[AttemptOutcome]:
    """Lowest variance wins; ties keep the lowest attempt index.

    With ``early_stop_variance`` the scan stops at the first attempt below the
    threshold, which is where a sequential run would have stopped.
    """
    best: Optional[AttemptOutcome] = None
    for outcome in sorted(outcomes, key=lambda o: o.index):
        if not outcome.succeeded or outcome.variance is None:
            continue
        if best is None or best.variance is None or outcome.variance < best.variance:
            best = outcome
        if early_stop_variance is not None and outcome.variance < early_stop_variance:
            break
    return best


class BatchGenerator:
    """Runs up to ``max_attempts`` independent attempts and keeps the most even one."""

    def __init__(self, params: BuildParams):
        self.params = params

    def generate(self) -> BatchResult:
        params = self.params
        capacity = check_line_capacity(
            num_cards=params.num_cards, min_num=params.min_num, max_num=params.max_num
        )
        if not capacity.feasible:
            raise InfeasibleConstraintError(
                "Not enough distinct winning lines in the number range",
                {"reasons": capacity.reasons},
            )

        start = time.monotonic()
        deadline = start + params.timeout_sec if params.timeout_sec else None
        if params.parallel and params.parallelism > 1 and params.max_attempts > 1:
            outcomes = self._run_parallel(deadline)
        else:
            outcomes = self._run_sequential(deadline)
        elapsed = time.monotonic() - start

        best = select_best(outcomes, params.early_stop_variance)
        succeeded = [o for o in outcomes if o.succeeded]
        metrics = BuildMetrics(
            total_time=elapsed,
            attempts_run=len(outcomes),
            attempts_succeeded=len(succeeded),
            card_fills=sum(o.fills for o in outcomes),
            card_rejections=sum(o.rejections for o in outcomes),
        )
        if best is None or best.cards is None or best.variance is None:
            reasons = sorted({o.failure for o in outcomes if o.failure})
            raise InfeasibleConstraintError(
                f"No valid batch of {params.num_cards} cards within {params.max_attempts} attempts",
                {"reasons": reasons, "card_fills": metrics.card_fills},
            )

        logger.info(
            "attempt %d selected: variance=%.4f (%d/%d attempts succeeded, %.2fs)",
            best.index,
            best.variance,
            len(succeeded),
            len(outcomes),
            elapsed,
        )
        return BatchResult(
            cards=best.cards,
            frequencies=best.frequencies,
            variance=best.variance,
            attempt=best.index,
            metrics=metrics,
        )

    def _run_sequential(self, deadline: Optional[float]) -> List[AttemptOutcome]:
        params = self.params
        outcomes: List[AttemptOutcome] = []
        for index in range(params.max_attempts):
            outcome = run_attempt(params, index, deadline)
            self._log_outcome(outcome)
            if outcome.timed_out:
                raise GenerationTimeoutError(params.timeout_sec or 0.0)
            outcomes.append(outcome)
            if (
                outcome.succeeded
                and params.early_stop_variance is not None
                and outcome.variance is not None
                and outcome.variance < params.early_stop_variance
            ):
                break
        return outcomes

    def _run_parallel(self, deadline: Optional[float]) -> List[AttemptOutcome]:
        params = self.params
        outcomes: List[AttemptOutcome] = []
        with ProcessPoolExecutor(max_workers=params.parallelism) as pool:
            futures = [pool.submit(run_attempt, params, i, deadline) for i in range(params.max_attempts)]
            for future in as_completed(futures):
                outcome = future.result()
                self._log_outcome(outcome)
                if outcome.timed_out:
                    for f in futures:
                        f.cancel()
                    raise GenerationTimeoutError(params.timeout_sec or 0.0)
                outcomes.append(outcome)
        return outcomes

    @staticmethod
    def _log_outcome(outcome: AttemptOutcome) -> None:
        if outcome.succeeded:
            logger.debug(
                "attempt %d ok: variance=%.4f fills=%d rejections=%d",
                outcome.index,
                outcome.variance,
                outcome.fills,
                outcome.rejections,
            )
        else:
            logger.debug("attempt %d failed: %s", outcome.index, outcome.failure)
