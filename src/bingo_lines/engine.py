"""Public entry point: validate, generate, and wrap the outcome in a result."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .core.assembler import CELLS_PER_CARD, DEFAULT_MAX_CARD_RETRIES
from .core.builder import DEFAULT_MAX_ATTEMPTS, BatchGenerator, BuildMetrics, BuildParams, Card
from .errors import (
    GenerationTimeoutError,
    InfeasibleConstraintError,
    InternalInconsistencyError,
    ValidationError,
)
from .report import DistributionReport
from .rng import ENGINES, engine_available, fresh_seed

logger = logging.getLogger(__name__)

MIN_CARDS = 1
MAX_CARDS = 100


@dataclass
class GenerationResult:
    """Outcome of one ``generate`` call.

    ``to_dict`` gives the caller-facing shape. ``seed``, ``variance``,
    ``attempt`` and ``metrics`` are kept for audit output only.
    """

    success: bool
    message: str
    cards: List[Card] = field(default_factory=list)
    number_distribution: List[Tuple[int, int]] = field(default_factory=list)
    error: Optional[str] = None
    seed: Optional[int] = None
    variance: Optional[float] = None
    attempt: Optional[int] = None
    metrics: Optional[BuildMetrics] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "message": self.message, "error": self.error}
        return {
            "success": True,
            "message": self.message,
            "cards": [card.to_dict() for card in self.cards],
            "number_distribution": [[x, c] for x, c in self.number_distribution],
        }


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")


def validate_parameters(num_cards: Any, min_num: Any, max_num: Any) -> None:
    """Reject bad card count or range before any generation work."""
    _require_int("Number of cards", num_cards)
    _require_int("Minimum number", min_num)
    _require_int("Maximum number", max_num)
    if not MIN_CARDS <= num_cards <= MAX_CARDS:
        raise ValidationError(
            f"Number of cards must be between {MIN_CARDS} and {MAX_CARDS}",
            {"num_cards": num_cards},
        )
    if max_num <= min_num:
        raise ValidationError(
            "Maximum number must be greater than minimum number",
            {"min_num": min_num, "max_num": max_num},
        )
    if max_num - min_num + 1 < CELLS_PER_CARD:
        raise ValidationError(
            f"Number range must be at least {CELLS_PER_CARD} to fill a 4x4 card",
            {"span": max_num - min_num + 1},
        )


def _validate_budget(
    *,
    seed: Any,
    rng_engine: str,
    max_attempts: int,
    max_card_retries: int,
    timeout_sec: Optional[float],
    parallelism: int,
    early_stop_variance: Optional[float],
) -> None:
    if rng_engine not in ENGINES:
        raise ValidationError(f"Unsupported RNG engine: {rng_engine}", {"engines": list(ENGINES)})
    if not engine_available(rng_engine):
        raise ValidationError(
            f"RNG engine {rng_engine} needs numpy; install bingo-lines[pcg]", {"rng_engine": rng_engine}
        )
    if seed is not None:
        _require_int("seed", seed)
    _require_int("max_attempts", max_attempts)
    _require_int("max_card_retries", max_card_retries)
    _require_int("parallelism", parallelism)
    if max_attempts < 1 or max_card_retries < 1 or parallelism < 1:
        raise ValidationError(
            "Attempt, retry and parallelism budgets must be at least 1",
            {
                "max_attempts": max_attempts,
                "max_card_retries": max_card_retries,
                "parallelism": parallelism,
            },
        )
    if timeout_sec is not None and timeout_sec <= 0:
        raise ValidationError("Timeout must be positive", {"timeout_sec": timeout_sec})
    if early_stop_variance is not None and early_stop_variance < 0:
        raise ValidationError(
            "Early-stop variance must not be negative", {"early_stop_variance": early_stop_variance}
        )


def _failure(kind: str, message: str, seed: Optional[int] = None) -> GenerationResult:
    return GenerationResult(success=False, message=message, error=kind, seed=seed)


def generate(
    num_cards: int,
    min_num: int,
    max_num: int,
    *,
    seed: Optional[int] = None,
    rng_engine: str = "py_random",
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    max_card_retries: int = DEFAULT_MAX_CARD_RETRIES,
    timeout_sec: Optional[float] = None,
    parallel: bool = False,
    parallelism: int = 1,
    early_stop_variance: Optional[float] = None,
    strict: bool = False,
) -> GenerationResult:
    """Generate ``num_cards`` 4x4 cards over ``[min_num, max_num]``.

    Every winning line (row, column, diagonal) in the batch is a distinct set
    of four numbers, and usage is balanced across the range. Validation,
    infeasibility and timeouts come back as failure results. An internal
    inconsistency is logged and returned as a generic failure, or re-raised
    when ``strict`` is set.
    """
    try:
        validate_parameters(num_cards, min_num, max_num)
        _validate_budget(
            seed=seed,
            rng_engine=rng_engine,
            max_attempts=max_attempts,
            max_card_retries=max_card_retries,
            timeout_sec=timeout_sec,
            parallelism=parallelism,
            early_stop_variance=early_stop_variance,
        )
    except ValidationError as exc:
        logger.info("rejected parameters: %s", exc)
        return _failure(exc.code, f"Invalid parameters: {exc.message}.")

    run_seed = fresh_seed() if seed is None else seed
    params = BuildParams(
        num_cards=num_cards,
        min_num=min_num,
        max_num=max_num,
        seed=run_seed,
        rng_engine=rng_engine,
        max_attempts=max_attempts,
        max_card_retries=max_card_retries,
        timeout_sec=timeout_sec,
        early_stop_variance=early_stop_variance,
        parallel=parallel,
        parallelism=parallelism,
    )
    logger.debug("generating %d cards over [%d, %d] with seed %d", num_cards, min_num, max_num, run_seed)

    try:
        batch = BatchGenerator(params).generate()
    except InfeasibleConstraintError as exc:
        logger.warning("generation infeasible: %s", exc)
        return _failure(
            exc.code,
            f"Failed to generate valid bingo cards: {exc.message}. Try adjusting parameters.",
            run_seed,
        )
    except GenerationTimeoutError as exc:
        logger.warning("generation timed out: %s", exc)
        return _failure(exc.code, f"Generation timed out: {exc.message}.", run_seed)
    except InternalInconsistencyError as exc:
        logger.exception("internal inconsistency during generation: %s", exc)
        if strict:
            raise
        return _failure(exc.code, "Card generation failed due to an internal error.", run_seed)

    report = DistributionReport.from_frequencies(batch.frequencies, min_num=min_num, max_num=max_num)
    return GenerationResult(
        success=True,
        message=f"Successfully generated {num_cards} bingo cards with balanced distribution!",
        cards=batch.cards,
        number_distribution=report.entries,
        seed=run_seed,
        variance=batch.variance,
        attempt=batch.attempt,
        metrics=batch.metrics,
    )
