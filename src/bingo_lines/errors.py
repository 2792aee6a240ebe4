"""Exception hierarchy for bingo card generation."""

from __future__ import annotations

from typing import Any, Dict, Optional


class BingoLinesError(Exception):
    """Base error for the generator.

    Attributes:
        code: short machine-readable error kind
        message: human-readable description
        details: extra context for logs and reports
    """

    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.details:
            text += f" {self.details}"
        return text


class ValidationError(BingoLinesError, ValueError):
    """Parameters are malformed or out of bounds."""

    code = "validation"


class InfeasibleConstraintError(BingoLinesError, RuntimeError):
    """Line uniqueness could not be satisfied within the attempt budget."""

    code = "infeasible"


class CardRetryExhaustedError(InfeasibleConstraintError):
    """A single card ran out of fills inside one attempt."""

    def __init__(self, card_id: int, retries: int):
        super().__init__(
            f"Card {card_id} could not be placed within {retries} fills",
            details={"card_id": card_id, "retries": retries},
        )
        self.card_id = card_id
        self.retries = retries


class GenerationTimeoutError(BingoLinesError):
    code = "timeout"

    def __init__(self, timeout_sec: float):
        super().__init__(
            f"Generation exceeded the {timeout_sec:g}s time limit",
            details={"timeout_sec": timeout_sec},
        )
        self.timeout_sec = timeout_sec


class InternalInconsistencyError(BingoLinesError, AssertionError):
    """A registry or frequency invariant broke. Indicates a logic defect."""

    code = "internal"
