from __future__ import annotations

import hashlib
import json
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .errors import InternalInconsistencyError

LINE_SIZE = 4

Fingerprint = Tuple[int, ...]


def canonicalize_line(numbers: Iterable[int]) -> Fingerprint:
    """Order-independent identity of a winning line."""
    line = tuple(sorted(numbers))
    if len(line) != LINE_SIZE or len(set(line)) != LINE_SIZE:
        raise InternalInconsistencyError(
            f"A winning line needs {LINE_SIZE} distinct numbers, got {list(line)}"
        )
    return line


def row_sets_of_card(matrix: Sequence[Sequence[int]]) -> List[Fingerprint]:
    return [canonicalize_line(row) for row in matrix]


def col_sets_of_card(matrix: Sequence[Sequence[int]]) -> List[Fingerprint]:
    if not matrix:
        return []
    size = len(matrix)
    return [canonicalize_line(matrix[i][j] for i in range(size)) for j in range(len(matrix[0]))]


def diag_sets_of_card(matrix: Sequence[Sequence[int]]) -> List[Fingerprint]:
    size = len(matrix)
    main = canonicalize_line(matrix[i][i] for i in range(size))
    anti = canonicalize_line(matrix[i][size - 1 - i] for i in range(size))
    return [main, anti]


def winning_lines_of_card(matrix: Sequence[Sequence[int]]) -> List[Fingerprint]:
    """All 10 lines of a 4x4 card: rows, then columns, then both diagonals."""
    return row_sets_of_card(matrix) + col_sets_of_card(matrix) + diag_sets_of_card(matrix)


def line_sets_by_family(matrix: Sequence[Sequence[int]]) -> Dict[str, List[Tuple[int, ...]]]:
    """Sorted line tuples per family, without validating the card.

    Used for auditing batches that may be malformed.
    """
    size = len(matrix)
    return {
        "rows": [tuple(sorted(row)) for row in matrix],
        "cols": [tuple(sorted(matrix[i][j] for i in range(size))) for j in range(size)],
        "diags": [
            tuple(sorted(matrix[i][i] for i in range(size))),
            tuple(sorted(matrix[i][size - 1 - i] for i in range(size))),
        ],
    }


class LineRegistry:
    """Winning lines committed so far in one attempt.

    Holds one fingerprint per committed line; no two are equal. A registry is
    created fresh for every attempt and never shared between attempts.
    """

    def __init__(self) -> None:
        self._lines: Set[Fingerprint] = set()

    canonicalize = staticmethod(canonicalize_line)

    def try_commit(self, fingerprint: Fingerprint) -> bool:
        if fingerprint in self._lines:
            return False
        self._lines.add(fingerprint)
        return True

    def rollback(self, fingerprints: Iterable[Fingerprint]) -> None:
        for fp in fingerprints:
            if fp not in self._lines:
                raise InternalInconsistencyError(
                    f"Rollback of a line that was never committed: {fp}"
                )
            self._lines.remove(fp)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._lines

    def __len__(self) -> int:
        return len(self._lines)


def matrix_hash(matrix: Sequence[Sequence[int]]) -> str:
    payload = json.dumps([list(row) for row in matrix], ensure_ascii=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def cards_hash(matrices: Iterable[Sequence[Sequence[int]]]) -> str:
    hashes = [matrix_hash(m) for m in matrices]
    payload = json.dumps(hashes, ensure_ascii=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()
