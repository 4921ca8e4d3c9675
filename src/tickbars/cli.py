"""tickbars CLI: command-line interface for bar sampling over tick files."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click
import numpy as np

from tickbars.api import information_bar_params
from tickbars.bars.base import InformationBarParams
from tickbars.config import TickbarsConfig
from tickbars.errors import TickbarsError
from tickbars.pipeline import count_bars, sample_file, search_files, write_result

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_TICK_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)
_OUTPUT_FILE = click.Path(dir_okay=False, writable=True, path_type=Path)


def _setup_logging(log_level: str) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _config(ctx: click.Context) -> TickbarsConfig:
    return ctx.obj["config"] if ctx.obj else TickbarsConfig()


def _finish(result: np.ndarray, output: Path | None, summary: str) -> None:
    if output is not None:
        write_result(result, output)
        click.echo(f"Done. {summary}, written to {output}.")
    else:
        click.echo(f"Done. {summary}.")


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    help="Set logging verbosity.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to tickbars.toml config file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_path: str | None) -> None:
    """tickbars - Bar sampling over financial tick data.

    \b
    Tick files:
      *.npy              numpy array
      *.txt, *.csv       one value per line
      anything else      raw native-endian float64 (int64 for search)

    \b
    Quick start:
      tickbars cusum returns.npy --threshold 0.02
      tickbars events returns.npy --threshold 0.01 -o events.npy
      tickbars imbalance flow.npy --expected-ticks 500 --window 1000
      tickbars runs prices.txt --from-prices --adaptive --min 50 --max 5000
      tickbars search event_ts.npy --haystack bar_ts.npy --offset 60
    """
    _setup_logging(log_level)
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = TickbarsConfig.find_and_load(config_path)
    except (OSError, ValueError) as exc:
        raise click.UsageError(f"Invalid configuration: {exc}") from exc


# --- Fixed-threshold samplers ---


@cli.command()
@click.argument("path", type=_TICK_FILE)
@click.option("--threshold", required=True, type=float, help="Cumulative sum that closes a bar.")
@click.option("--output", "-o", type=_OUTPUT_FILE, default=None, help="Write labels here.")
@click.pass_context
def cusum(ctx: click.Context, path: Path, threshold: float, output: Path | None) -> None:
    """Label ticks with cumulative-sum bar ids (starting at 1).

    A new bar starts after the running sum of tick values reaches
    --threshold.
    """
    try:
        labels = sample_file(
            "cusum", path, threshold=threshold, chunk_bytes=_config(ctx).io.chunk_bytes
        )
    except (TickbarsError, OSError) as exc:
        click.echo(f"Failed to sample {path}: {exc}", err=True)
        raise SystemExit(1)
    _finish(labels, output, f"{len(labels)} ticks in {count_bars(labels)} bars")


@cli.command()
@click.argument("path", type=_TICK_FILE)
@click.option("--threshold", required=True, type=float, help="Drift that fires an event.")
@click.option("--output", "-o", type=_OUTPUT_FILE, default=None, help="Write positions here.")
@click.pass_context
def events(ctx: click.Context, path: Path, threshold: float, output: Path | None) -> None:
    """Detect symmetric CUSUM events and report their tick positions."""
    try:
        positions = sample_file(
            "events", path, threshold=threshold, chunk_bytes=_config(ctx).io.chunk_bytes
        )
    except (TickbarsError, OSError) as exc:
        click.echo(f"Failed to sample {path}: {exc}", err=True)
        raise SystemExit(1)
    _finish(positions, output, f"{len(positions)} events")


# --- Information-driven samplers ---


def _information_options(func: Any) -> Any:
    options = [
        click.argument("path", type=_TICK_FILE),
        click.option("--num-prev-bars", type=int, default=None, help="Bars E[T] averages over."),
        click.option("--window", type=float, default=None, help="Ticks E[imbalance] averages over."),
        click.option(
            "--expected-ticks", type=float, default=None, help="Warm-up and initial E[T]."
        ),
        click.option("--min", "min_ticks", type=float, default=None, help="Lower bound on E[T]."),
        click.option("--max", "max_ticks", type=float, default=None, help="Upper bound on E[T]."),
        click.option(
            "--adaptive/--fixed",
            default=None,
            help="Recalibrate E[T] after each bar (default from config).",
        ),
        click.option(
            "--from-prices",
            is_flag=True,
            default=False,
            help="Input holds prices; sign ticks with the tick rule.",
        ),
        click.option("--output", "-o", type=_OUTPUT_FILE, default=None, help="Write labels here."),
        click.pass_context,
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _merge_params(
    base: InformationBarParams,
    num_prev_bars: int | None,
    window: float | None,
    expected_ticks: float | None,
    min_ticks: float | None,
    max_ticks: float | None,
    adaptive: bool | None,
) -> InformationBarParams:
    """Overlay CLI options on the configured parameters."""
    constraints = base.constraints
    if min_ticks is not None or max_ticks is not None:
        if constraints is None and (min_ticks is None or max_ticks is None):
            raise click.UsageError("--min and --max must be given together")
        constraints = (
            min_ticks if min_ticks is not None else constraints.min,
            max_ticks if max_ticks is not None else constraints.max,
        )
    try:
        return information_bar_params(
            num_prev_bars if num_prev_bars is not None else base.num_prev_bars,
            window if window is not None else base.expected_imbalance_window,
            expected_ticks if expected_ticks is not None else base.expected_num_ticks,
            constraints,
            adaptive if adaptive is not None else base.adaptive,
        )
    except TickbarsError as exc:
        raise click.UsageError(str(exc)) from exc


def _run_information_sampler(
    ctx: click.Context, sampler: str, path: Path, output: Path | None, **options: Any
) -> None:
    config = _config(ctx)
    base = config.imbalance if sampler == "imbalance" else config.runs
    from_prices = options.pop("from_prices")
    params = _merge_params(base, **options)
    try:
        labels = sample_file(
            sampler,
            path,
            params=params,
            from_prices=from_prices,
            chunk_bytes=config.io.chunk_bytes,
        )
    except (TickbarsError, OSError) as exc:
        click.echo(f"Failed to sample {path}: {exc}", err=True)
        raise SystemExit(1)
    _finish(labels, output, f"{len(labels)} ticks in {count_bars(labels)} {sampler} bars")


@cli.command()
@_information_options
def imbalance(ctx: click.Context, path: Path, output: Path | None, **options: Any) -> None:
    """Label ticks with imbalance bar ids (starting at 0).

    PATH holds signed per-tick imbalances (+/-1, +/-volume, ...), or
    prices with --from-prices.  Options left out fall back to the
    [imbalance] section of the config file.
    """
    _run_information_sampler(ctx, "imbalance", path, output, **options)


@cli.command()
@_information_options
def runs(ctx: click.Context, path: Path, output: Path | None, **options: Any) -> None:
    """Label ticks with run bar ids (starting at 0).

    PATH holds signed per-tick imbalances (+/-1, +/-volume, ...), or
    prices with --from-prices.  Options left out fall back to the
    [runs] section of the config file.
    """
    _run_information_sampler(ctx, "runs", path, output, **options)


# --- Alignment ---


@cli.command()
@click.argument("needles", type=_TICK_FILE)
@click.option(
    "--haystack", type=_TICK_FILE, default=None, help="Sorted values to search (default: NEEDLES)."
)
@click.option("--offset", type=int, default=0, help="Added to every needle before searching.")
@click.option("--output", "-o", type=_OUTPUT_FILE, default=None, help="Write indices here.")
@click.pass_context
def search(
    ctx: click.Context,
    needles: Path,
    haystack: Path | None,
    offset: int,
    output: Path | None,
) -> None:
    """Find the left insertion point of every NEEDLE + offset.

    Both files must hold int64 values sorted ascending.
    """
    try:
        indices = search_files(needles, haystack, offset, _config(ctx).io.chunk_bytes)
    except (TickbarsError, OSError) as exc:
        click.echo(f"Failed to search {needles}: {exc}", err=True)
        raise SystemExit(1)
    _finish(indices, output, f"{len(indices)} positions")
