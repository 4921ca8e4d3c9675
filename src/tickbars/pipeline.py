"""File pipeline: read tick files, run a sampler, write the result.

Tick files come in three shapes: numpy ``.npy`` arrays, text files with
one value per line (``.txt``/``.csv``), and raw native-endian binary
(anything else).  Raw files are read in fixed-size blocks and handed to
the samplers as a chunked sequence, so large files are never copied into
one contiguous buffer.
"""

from __future__ import annotations

import logging
import time as time_mod
from pathlib import Path

import numpy as np

from tickbars.api import (
    compute_imbalance_bars,
    compute_run_bars,
    cumulative_sum_with_reset,
    searchsorted,
    symmetric_cumulative_sum_with_reset,
)
from tickbars.bars.base import InformationBarParams
from tickbars.bars.utils import tick_imbalances
from tickbars.chunks import FLOAT64, INT64, ChunkedSequence
from tickbars.config import DEFAULT_CHUNK_BYTES
from tickbars.errors import MalformedArgumentError

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = frozenset({".txt", ".csv"})
SAMPLERS = ("cusum", "events", "imbalance", "runs")


def read_ticks(
    path: Path | str,
    dtype: np.dtype | type = FLOAT64,
    chunk_bytes: int = DEFAULT_CHUNK_BYTES,
) -> ChunkedSequence:
    """Read a tick file into a ChunkedSequence of ``dtype``.

    Raises:
        MalformedArgumentError: If the file content cannot be read as
            ``dtype`` values (bad text, a corrupt or pickled ``.npy``,
            wrong array shape, or a raw file whose size is not a whole
            number of elements).
        OSError: If the file cannot be opened.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".npy":
        try:
            values = np.load(path, allow_pickle=False)
        except (ValueError, EOFError) as exc:
            raise MalformedArgumentError(f"Cannot load {path}: {exc}") from exc
        return ChunkedSequence([values], dtype)

    if suffix in TEXT_SUFFIXES:
        try:
            values = np.loadtxt(path, dtype=dtype, ndmin=1)
        except ValueError as exc:
            raise MalformedArgumentError(f"Cannot parse {path}: {exc}") from exc
        return ChunkedSequence([values], dtype)

    chunks: list[bytes] = []
    with open(path, "rb") as f:
        while True:
            block = f.read(chunk_bytes)
            if not block:
                break
            chunks.append(block)
    return ChunkedSequence(chunks, dtype)


def write_result(result: np.ndarray, path: Path | str) -> None:
    """Write labels or positions: ``.npy`` via numpy, otherwise one per line."""
    path = Path(path)
    if path.suffix.lower() == ".npy":
        np.save(path, result)
    else:
        np.savetxt(path, result, fmt="%d")
    logger.info("Wrote %d values to %s", len(result), path)


def count_bars(labels: np.ndarray) -> int:
    """Number of distinct bar ids in a label array."""
    if len(labels) == 0:
        return 0
    return int(labels[-1]) - int(labels[0]) + 1


def sample_file(
    sampler: str,
    path: Path | str,
    *,
    threshold: float | None = None,
    params: InformationBarParams | None = None,
    from_prices: bool = False,
    chunk_bytes: int = DEFAULT_CHUNK_BYTES,
) -> np.ndarray:
    """Run one sampler over a tick file.

    Args:
        sampler: One of 'cusum', 'events', 'imbalance', 'runs'.
        path: Tick file to read.
        threshold: Threshold for 'cusum' and 'events'.
        params: Parameters for 'imbalance' and 'runs'.
        from_prices: Treat the file as prices and sign them with the tick
            rule before sampling.
        chunk_bytes: Read size for raw binary files.

    Returns:
        Per-tick bar ids, or event positions for 'events'.
    """
    if sampler not in SAMPLERS:
        raise MalformedArgumentError(f"Unknown sampler '{sampler}', expected one of {SAMPLERS}")
    if sampler in ("cusum", "events") and threshold is None:
        raise MalformedArgumentError(f"'{sampler}' requires a threshold")
    if sampler in ("imbalance", "runs") and params is None:
        raise MalformedArgumentError(f"'{sampler}' requires bar parameters")

    start_time = time_mod.time()
    ticks = read_ticks(path, FLOAT64, chunk_bytes)
    logger.info("Read %d ticks from %s (%d chunks)", len(ticks), path, len(ticks.chunks))

    values: ChunkedSequence | np.ndarray = ticks
    if from_prices:
        values = tick_imbalances(ticks)

    if sampler == "cusum":
        result = cumulative_sum_with_reset(values, threshold)
    elif sampler == "events":
        result = symmetric_cumulative_sum_with_reset(values, threshold)
    else:
        assert params is not None
        compute = compute_imbalance_bars if sampler == "imbalance" else compute_run_bars
        result = compute(
            values,
            params.num_prev_bars,
            params.expected_imbalance_window,
            params.expected_num_ticks,
            params.constraints,
            params.adaptive,
        )

    elapsed = time_mod.time() - start_time
    if sampler == "events":
        logger.info(
            "Detected %d events in %d ticks in %s",
            len(result),
            len(ticks),
            _format_elapsed(elapsed),
        )
    else:
        logger.info(
            "Built %d %s bars from %d ticks in %s",
            count_bars(result),
            sampler,
            len(ticks),
            _format_elapsed(elapsed),
        )
    return result


def search_files(
    needles_path: Path | str,
    haystack_path: Path | str | None = None,
    offset: int = 0,
    chunk_bytes: int = DEFAULT_CHUNK_BYTES,
) -> np.ndarray:
    """searchsorted() over integer files; self-search without a haystack."""
    start_time = time_mod.time()
    needles = read_ticks(needles_path, INT64, chunk_bytes)
    haystack = None if haystack_path is None else read_ticks(haystack_path, INT64, chunk_bytes)
    result = searchsorted(needles, offset, haystack)
    logger.info(
        "Searched %d needles in %d values in %s",
        len(needles),
        len(needles) if haystack is None else len(haystack),
        _format_elapsed(time_mod.time() - start_time),
    )
    return result


def _format_elapsed(seconds: float) -> str:
    """Format seconds into a human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
