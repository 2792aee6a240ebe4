"""Single-card assembly with bounded retry."""

from __future__ import annotations

import enum
import logging
import time
from typing import List, Optional, Sequence

from ..errors import CardRetryExhaustedError, GenerationTimeoutError
from ..frequency import FrequencyTracker
from ..picker import WeightedPicker
from ..uniqueness import Fingerprint, LineRegistry, winning_lines_of_card

logger = logging.getLogger(__name__)

GRID_SIZE = 4
CELLS_PER_CARD = GRID_SIZE * GRID_SIZE
DEFAULT_MAX_CARD_RETRIES = 1000


class CardState(enum.Enum):
    FILLING = "filling"
    CHECKING = "checking"
    COMMITTED = "committed"
    REJECTED = "rejected"


class CardAssembler:
    """Builds one card at a time against the attempt's shared line registry.

    Each card runs FILLING -> CHECKING -> COMMITTED | REJECTED. A rejected card
    is discarded whole and refilled; repairing single cells could collide with
    lines committed by earlier cards. After ``max_retries`` fills the card gives
    up and the attempt fails.
    """

    def __init__(
        self,
        *,
        numbers: Sequence[int],
        picker: WeightedPicker,
        registry: LineRegistry,
        tracker: FrequencyTracker,
        max_retries: int = DEFAULT_MAX_CARD_RETRIES,
        deadline: Optional[float] = None,
        timeout_sec: Optional[float] = None,
    ):
        self.numbers = list(numbers)
        self.picker = picker
        self.registry = registry
        self.tracker = tracker
        self.max_retries = max_retries
        self.deadline = deadline
        self.timeout_sec = timeout_sec
        self.total_fills = 0
        self.rejections = 0

    def assemble(self, card_id: int) -> List[List[int]]:
        state = CardState.FILLING
        fills = 0
        matrix: List[List[int]] = []
        while True:
            if state is CardState.FILLING:
                if fills >= self.max_retries:
                    logger.debug("card %d exhausted %d fills", card_id, fills)
                    raise CardRetryExhaustedError(card_id, fills)
                self._check_deadline()
                fills += 1
                self.total_fills += 1
                matrix = self._fill()
                state = CardState.CHECKING
            elif state is CardState.CHECKING:
                state = CardState.COMMITTED if self._commit_lines(matrix) else CardState.REJECTED
            elif state is CardState.REJECTED:
                self.rejections += 1
                state = CardState.FILLING
            else:
                self.tracker.increment_all(x for row in matrix for x in row)
                return matrix

    def _fill(self) -> List[List[int]]:
        # draw order is row-major placement order
        drawn = self.picker.draw(self.numbers, self.tracker, CELLS_PER_CARD)
        return [drawn[i : i + GRID_SIZE] for i in range(0, CELLS_PER_CARD, GRID_SIZE)]

    def _commit_lines(self, matrix: List[List[int]]) -> bool:
        committed: List[Fingerprint] = []
        for line in winning_lines_of_card(matrix):
            if not self.registry.try_commit(line):
                self.registry.rollback(committed)
                return False
            committed.append(line)
        return True

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise GenerationTimeoutError(self.timeout_sec or 0.0)
