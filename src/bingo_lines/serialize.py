from __future__ import annotations

import csv
import json
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from .core.assembler import GRID_SIZE
from .core.builder import Card
from .uniqueness import cards_hash, matrix_hash


def ensure_parent(path: Path, *, mkdirs: bool) -> None:
    parent = path.parent
    if not parent.exists() and mkdirs:
        parent.mkdir(parents=True, exist_ok=True)


def _refuse_overwrite(path: Path, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing file without --force: {path}")


def write_json(path: Path, data: object, *, mkdirs: bool, overwrite: bool) -> None:
    _refuse_overwrite(path, overwrite)
    ensure_parent(path, mkdirs=mkdirs)
    text = json.dumps(data, ensure_ascii=True, sort_keys=True, indent=2)
    path.write_text(text + "\n", encoding="utf-8")


def build_run_meta(
    *,
    app_version: str,
    params_hash: str,
    seed: int | None,
    rng_engine: str,
    parallel: bool,
    parallelism: int,
) -> Dict[str, object]:
    return {
        "app_version": app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python_version": sys.version.split()[0],
        "platform": platform.system().lower(),
        "params_hash": params_hash,
        "seed": seed,
        "rng_engine": rng_engine,
        "hash_algorithm": "sha256",
        "parallel": parallel,
        "parallelism": parallelism,
    }


def emit_cards_json(
    path: Path,
    *,
    cards: Sequence[Card],
    number_distribution: Sequence[Tuple[int, int]],
    run_meta: Dict[str, object],
    mkdirs: bool,
    overwrite: bool,
) -> None:
    entries: List[Dict[str, object]] = []
    for card in cards:
        entry = card.to_dict()
        entry["matrix_hash"] = matrix_hash(card.cells)
        entries.append(entry)
    data = {
        "run_meta": run_meta,
        "cards": entries,
        "cards_hash": cards_hash(card.cells for card in cards),
        "number_distribution": [[x, c] for x, c in number_distribution],
    }
    write_json(path, data, mkdirs=mkdirs, overwrite=overwrite)


def _is_grid(cells: Any) -> bool:
    return (
        isinstance(cells, list)
        and len(cells) == GRID_SIZE
        and all(isinstance(row, list) and len(row) == GRID_SIZE for row in cells)
        and all(isinstance(x, int) and not isinstance(x, bool) for row in cells for x in row)
    )


def load_cards_json(path: Path) -> Tuple[List[Card], Dict[str, Any]]:
    """Read back a cards.json produced by ``emit_cards_json``."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get("cards"), list):
        raise ValueError(f"Not a cards file: {path}")
    cards = [Card(id=int(entry["id"]), cells=entry["cells"]) for entry in data["cards"]]
    for card in cards:
        if not _is_grid(card.cells):
            raise ValueError(f"Card {card.id} is not a {GRID_SIZE}x{GRID_SIZE} grid of integers: {path}")
    return cards, data.get("run_meta", {})


def emit_report_json(
    path: Path, *, report: Dict[str, object], mkdirs: bool, overwrite: bool
) -> None:
    write_json(path, report, mkdirs=mkdirs, overwrite=overwrite)


def emit_summary_csv(
    path: Path,
    *,
    number_distribution: Sequence[Tuple[int, int]],
    mkdirs: bool,
    overwrite: bool,
) -> None:
    _refuse_overwrite(path, overwrite)
    ensure_parent(path, mkdirs=mkdirs)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["number", "total"])
        for num, count in number_distribution:
            writer.writerow([num, count])
