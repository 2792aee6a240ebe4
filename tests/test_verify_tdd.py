from __future__ import annotations

from bingo_lines.engine import generate
from bingo_lines.verify import count_line_collisions, failed_checks, verify

CARD_A = [
    [1, 2, 3, 4],
    [5, 6, 7, 8],
    [9, 10, 11, 12],
    [13, 14, 15, 16],
]
# same first row as a set, everything else moved
CARD_B = [
    [4, 3, 2, 1],
    [17, 18, 19, 20],
    [21, 22, 23, 24],
    [25, 26, 27, 28],
]


def test_verify_reports_uniqueness_and_uniformity():
    result = generate(12, 1, 25, seed=123)
    cells = [card.cells for card in result.cards]
    rep = verify(cells, min_num=1, max_num=25)
    assert rep["ok"] is True
    assert rep["ok_no_duplicates_within_cards"] is True
    assert rep["ok_values_in_range"] is True
    assert rep["ok_no_identical_cards"] is True
    assert rep["uniqueness"]["lines_checked"] == 120
    assert rep["uniqueness"]["total_collisions"] == 0
    assert sorted(rep["frequencies"]) == list(range(1, 26))
    assert rep["tests"]["global"]["chi2"]["p_value"] >= 0.0
    assert failed_checks(rep) == []


def test_collisions_detected_across_cards():
    uniq = count_line_collisions([CARD_A, CARD_B])
    assert uniq.collisions_by_family["rows"] == 1
    assert uniq.collisions_by_family["cols"] == 0
    assert uniq.total_collisions == 1


def test_collision_between_row_and_column_families():
    transposed = [list(col) for col in zip(*CARD_A)]
    uniq = count_line_collisions([CARD_A, transposed])
    # each row of A is a column of its transpose, diagonals coincide too
    assert uniq.collisions_by_family["rows"] == 0
    assert uniq.collisions_by_family["diags"] == 2
    assert uniq.total_collisions == 10


def test_malformed_batch_flags_every_problem():
    bad = [row[:] for row in CARD_A]
    bad[3][3] = 1
    rep = verify([CARD_A, CARD_A, bad], min_num=2, max_num=16)
    assert rep["ok"] is False
    assert set(failed_checks(rep)) == {
        "ok_no_duplicates_within_cards",
        "ok_values_in_range",
        "ok_no_identical_cards",
        "line_collisions",
    }
