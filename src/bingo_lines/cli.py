from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config import resolve_parameters
from .engine import generate
from .logging_setup import setup_logging
from .report import DistributionReport
from .serialize import (
    build_run_meta,
    emit_cards_json,
    emit_report_json,
    emit_summary_csv,
    load_cards_json,
)
from .verify import failed_checks, verify as verify_artifacts
from .version import __version__

app = typer.Typer(help="Bingo card generator with globally unique winning lines")

EXIT_FAILED = 1
EXIT_INVALID = 2


@app.callback()
def common_options(
    version: bool = typer.Option(
        False, "--version", help="Show application version and exit", is_eager=True
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(0)


@app.command()
def run(
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    num_cards: int = typer.Option(None, "--num-cards", "-n", help="Number of cards (1-100)"),
    min_num: int = typer.Option(None, "--min", help="Smallest number on the cards"),
    max_num: int = typer.Option(None, "--max", help="Largest number on the cards"),
    seed: int = typer.Option(None, "--seed", help="Seed for reproducible output"),
    timeout: float = typer.Option(None, "--timeout", help="Give up after this many seconds"),
    parallelism: int = typer.Option(
        None, "--parallelism", help="Run attempts on this many worker processes"
    ),
    out_cards: str = typer.Option(None, "--out-cards", help="cards.json output path"),
    out_report: str = typer.Option(None, "--out-report", help="report.json output path"),
    summary_csv: str = typer.Option(None, "--summary-csv", help="Path to summary.csv (optional)"),
    log_file: str = typer.Option(None, "--log-file", help="Log file path"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve params and exit"),
    force: bool = typer.Option(False, "--force", help="Overwrite outputs if they exist"),
    no_mkdirs: bool = typer.Option(False, "--no-mkdirs", help="Do not create parent directories"),
) -> None:
    """Generate a batch of cards and write cards/report files."""

    cli_overrides: Dict[str, Any] = {}
    for key, value in (
        ("num_cards", num_cards),
        ("min_num", min_num),
        ("max_num", max_num),
        ("seed.value", seed),
        ("build_timeout_sec", timeout),
        ("out_cards", out_cards),
        ("out_report", out_report),
        ("summary_csv", summary_csv),
        ("log_file", log_file),
        ("log_level", log_level),
    ):
        if value is not None:
            cli_overrides[key] = value
    if parallelism is not None:
        cli_overrides["parallelism"] = parallelism
        cli_overrides["parallel"] = parallelism > 1

    resolved, params_hash, _cfg_path_unused = resolve_parameters(
        config_path_str=config, cli_overrides=cli_overrides
    )

    setup_logging(
        level=str(resolved.get("log_level", "INFO")),
        log_file=resolved.get("log_file"),
        json_format=(str(resolved.get("log_format", "text")) == "json"),
    )

    if dry_run:
        typer.echo(f"Cards: {resolved.get('num_cards')} over [{resolved.get('min_num')}, {resolved.get('max_num')}]")
        typer.echo(f"Params hash: {params_hash}")
        raise typer.Exit(0)

    seed_cfg = resolved.get("seed", {})
    rng_engine = str(seed_cfg.get("engine", "py_random"))
    result = generate(
        resolved.get("num_cards"),  # type: ignore[arg-type]
        resolved.get("min_num"),  # type: ignore[arg-type]
        resolved.get("max_num"),  # type: ignore[arg-type]
        seed=seed_cfg.get("value"),
        rng_engine=rng_engine,
        max_attempts=int(resolved["max_attempts"]),
        max_card_retries=int(resolved["max_card_retries"]),
        timeout_sec=resolved.get("build_timeout_sec"),
        parallel=bool(resolved.get("parallel", False)),
        parallelism=int(resolved.get("parallelism", 1)),
        early_stop_variance=resolved.get("early_stop_variance"),
        strict=bool(resolved.get("strict", False)),
    )

    if not result.success:
        typer.echo(result.message, err=True)
        raise typer.Exit(code=EXIT_INVALID if result.error == "validation" else EXIT_FAILED)

    min_value = int(resolved["min_num"])
    max_value = int(resolved["max_num"])
    cells = [card.cells for card in result.cards]
    report = verify_artifacts(cells, min_num=min_value, max_num=max_value)
    distribution = DistributionReport.from_frequencies(
        dict(result.number_distribution), min_num=min_value, max_num=max_value
    )
    report["distribution"] = distribution.summary()
    if result.metrics is not None:
        report["build"] = {
            "attempt": result.attempt,
            "attempts_run": result.metrics.attempts_run,
            "attempts_succeeded": result.metrics.attempts_succeeded,
            "card_fills": result.metrics.card_fills,
            "card_rejections": result.metrics.card_rejections,
            "total_time_sec": round(result.metrics.total_time, 3),
        }

    run_meta = build_run_meta(
        app_version=__version__,
        params_hash=params_hash,
        seed=result.seed,
        rng_engine=rng_engine,
        parallel=bool(resolved.get("parallel", False)),
        parallelism=int(resolved.get("parallelism", 1)),
    )

    out_cards_path = Path(resolved["out_cards"])
    out_report_path = Path(resolved["out_report"])
    emit_cards_json(
        out_cards_path,
        cards=result.cards,
        number_distribution=result.number_distribution,
        run_meta=run_meta,
        mkdirs=(not no_mkdirs),
        overwrite=force,
    )
    emit_report_json(out_report_path, report=report, mkdirs=(not no_mkdirs), overwrite=force)

    if resolved.get("summary_csv"):
        emit_summary_csv(
            Path(resolved["summary_csv"]),
            number_distribution=result.number_distribution,
            mkdirs=(not no_mkdirs),
            overwrite=force,
        )

    summary = distribution.summary()
    typer.echo(result.message)
    typer.echo(f"Seed: {result.seed}  variance: {result.variance:.4f}  spread: {summary['spread']}")
    typer.echo(f"Output files: {out_cards_path}, {out_report_path}")
    raise typer.Exit(code=0)


@app.command()
def verify(
    cards: str = typer.Option(..., "--cards", help="Path to cards.json"),
    min_num: Optional[int] = typer.Option(None, "--min", help="Range minimum (default: smallest value found)"),
    max_num: Optional[int] = typer.Option(None, "--max", help="Range maximum (default: largest value found)"),
) -> None:
    """Re-audit a saved cards.json for duplicates and line collisions."""
    try:
        loaded, _meta = load_cards_json(Path(cards))
    except ValueError as exc:
        typer.echo(f"FAILED: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILED)
    cells = [card.cells for card in loaded]
    values = [x for matrix in cells for row in matrix for x in row]
    if not values:
        typer.echo("No cards found", err=True)
        raise typer.Exit(code=EXIT_FAILED)
    lo = min(values) if min_num is None else min_num
    hi = max(values) if max_num is None else max_num
    report = verify_artifacts(cells, min_num=lo, max_num=hi)
    failed = failed_checks(report)
    uniq = report["uniqueness"]
    typer.echo(f"Checked {len(cells)} cards, {uniq['lines_checked']} lines")  # type: ignore[index]
    if failed:
        typer.echo("FAILED: " + ", ".join(failed), err=True)
        raise typer.Exit(code=EXIT_FAILED)
    typer.echo("OK")
    raise typer.Exit(code=0)


def main(_argv: list[str] | None = None) -> int:
    try:
        app(args=_argv, standalone_mode=True)
        return 0
    except SystemExit as e:
        return int(e.code) if e.code is not None else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
