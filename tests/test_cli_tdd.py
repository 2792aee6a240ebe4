from __future__ import annotations

import csv
import json
from pathlib import Path

from typer.testing import CliRunner

from bingo_lines.cli import app
from bingo_lines.version import __version__

runner = CliRunner()


def run_args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "run",
        "--num-cards", "6",
        "--min", "1",
        "--max", "24",
        "--seed", "31",
        "--out-cards", str(tmp_path / "out" / "cards.json"),
        "--out-report", str(tmp_path / "out" / "report.json"),
        *extra,
    ]


def test_version_flag():
    result = runner.invoke(app, ["--version", "run"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_writes_cards_report_and_csv(tmp_path: Path):
    csv_path = tmp_path / "out" / "summary.csv"
    result = runner.invoke(app, run_args(tmp_path, "--summary-csv", str(csv_path)))
    assert result.exit_code == 0, result.output
    assert "Successfully generated 6 bingo cards" in result.output

    cards = json.loads((tmp_path / "out" / "cards.json").read_text(encoding="utf-8"))
    assert [c["id"] for c in cards["cards"]] == [1, 2, 3, 4, 5, 6]
    assert cards["run_meta"]["seed"] == 31
    assert cards["cards_hash"].startswith("sha256:")
    assert sum(c for _x, c in cards["number_distribution"]) == 96

    report = json.loads((tmp_path / "out" / "report.json").read_text(encoding="utf-8"))
    assert report["ok"] is True
    assert report["uniqueness"]["lines_checked"] == 60
    assert report["distribution"]["total"] == 96

    with csv_path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["number", "total"]
    assert len(rows) == 25


def test_run_refuses_to_overwrite_without_force(tmp_path: Path):
    assert runner.invoke(app, run_args(tmp_path)).exit_code == 0
    second = runner.invoke(app, run_args(tmp_path))
    assert second.exit_code != 0
    assert isinstance(second.exception, FileExistsError)
    assert runner.invoke(app, run_args(tmp_path, "--force")).exit_code == 0


def test_invalid_parameters_exit_code(tmp_path: Path):
    args = run_args(tmp_path)
    args[args.index("--max") + 1] = "10"
    result = runner.invoke(app, args)
    assert result.exit_code == 2
    assert not (tmp_path / "out" / "cards.json").exists()


def test_dry_run_prints_params_hash(tmp_path: Path):
    result = runner.invoke(app, run_args(tmp_path, "--dry-run"))
    assert result.exit_code == 0
    assert "sha256:" in result.output
    assert not (tmp_path / "out").exists()


def test_verify_accepts_generated_cards(tmp_path: Path):
    runner.invoke(app, run_args(tmp_path))
    result = runner.invoke(app, ["verify", "--cards", str(tmp_path / "out" / "cards.json")])
    assert result.exit_code == 0, result.output
    assert "OK" in result.output


def test_verify_flags_colliding_cards(tmp_path: Path):
    card = [[1, 2, 3, 4], [5, 6, 7, 8], [9, 10, 11, 12], [13, 14, 15, 16]]
    path = tmp_path / "cards.json"
    path.write_text(
        json.dumps({"cards": [{"id": 1, "cells": card}, {"id": 2, "cells": card}]}),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["verify", "--cards", str(path)])
    assert result.exit_code == 1


def test_non_integer_seed_from_env_exits_as_invalid(tmp_path: Path):
    args = run_args(tmp_path)
    seed_at = args.index("--seed")
    del args[seed_at : seed_at + 2]
    result = runner.invoke(app, args, env={"BINGO_LINES_SEED_VALUE": "abc"})
    assert result.exit_code == 2
    assert not (tmp_path / "out" / "cards.json").exists()


def test_verify_rejects_non_square_card(tmp_path: Path):
    card = [[1, 2, 3], [5, 6, 7, 8], [9, 10, 11, 12], [13, 14, 15, 16]]
    path = tmp_path / "cards.json"
    path.write_text(json.dumps({"cards": [{"id": 1, "cells": card}]}), encoding="utf-8")
    result = runner.invoke(app, ["verify", "--cards", str(path)])
    assert result.exit_code == 1
    assert not isinstance(result.exception, IndexError)
