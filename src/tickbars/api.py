"""Public call surface: one function per sampling operation.

Each function validates its arguments, builds a fresh sampler, runs it
over the whole input and returns a newly allocated int64 array.  Nothing
is shared between calls, so repeated calls on identical input return
identical output.  Calls are synchronous and CPU-bound; run large inputs
on a worker thread or process if the caller has a latency-sensitive loop.
"""

from __future__ import annotations

from numbers import Real
from typing import Any

import numpy as np
from pydantic import ValidationError

from tickbars.bars.base import Constraints, InformationBarParams
from tickbars.bars.imbalance import ImbalanceBarSampler
from tickbars.bars.runs import RunBarSampler
from tickbars.bars.standard import CumulativeSumBarSampler, SymmetricCusumDetector
from tickbars.errors import MalformedArgumentError
from tickbars.search import searchsorted

__all__ = [
    "compute_imbalance_bars",
    "compute_run_bars",
    "cumulative_sum_with_reset",
    "information_bar_params",
    "searchsorted",
    "symmetric_cumulative_sum_with_reset",
]


def _require_threshold(threshold: Any) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, Real):
        raise MalformedArgumentError(
            f"threshold must be a real number, got {type(threshold).__name__}"
        )
    return float(threshold)


def information_bar_params(
    num_prev_bars: int,
    expected_imbalance_window: float,
    expected_num_ticks: float,
    constraints: Constraints | tuple[float, float] | None = None,
    adaptive: bool = False,
) -> InformationBarParams:
    """Validate imbalance/run bar parameters.

    Raises:
        MalformedArgumentError: On a non-positive window, bar count or
            tick count, a constraints pair that is not (min, max) with
            min <= max, or missing constraints in adaptive mode.
    """
    try:
        return InformationBarParams(
            num_prev_bars=num_prev_bars,
            expected_imbalance_window=expected_imbalance_window,
            expected_num_ticks=expected_num_ticks,
            constraints=constraints,
            adaptive=adaptive,
        )
    except ValidationError as exc:
        raise MalformedArgumentError(str(exc)) from exc


def cumulative_sum_with_reset(values: Any, threshold: float) -> np.ndarray:
    """Bar id per tick, starting a new bar once the running sum reaches threshold."""
    return CumulativeSumBarSampler(_require_threshold(threshold)).label(values)


def symmetric_cumulative_sum_with_reset(values: Any, threshold: float) -> np.ndarray:
    """Positions where the symmetric CUSUM filter fires, sized to the event count."""
    return SymmetricCusumDetector(_require_threshold(threshold)).detect(values)


def compute_imbalance_bars(
    values: Any,
    num_prev_bars: int,
    expected_imbalance_window: float,
    expected_num_ticks: float,
    constraints: Constraints | tuple[float, float] | None = None,
    adaptive: bool = False,
) -> np.ndarray:
    """Imbalance bar id per tick; see ImbalanceBarSampler."""
    params = information_bar_params(
        num_prev_bars, expected_imbalance_window, expected_num_ticks, constraints, adaptive
    )
    return ImbalanceBarSampler(params).label(values)


def compute_run_bars(
    values: Any,
    num_prev_bars: int,
    expected_imbalance_window: float,
    expected_num_ticks: float,
    constraints: Constraints | tuple[float, float] | None = None,
    adaptive: bool = False,
) -> np.ndarray:
    """Run bar id per tick; see RunBarSampler."""
    params = information_bar_params(
        num_prev_bars, expected_imbalance_window, expected_num_ticks, constraints, adaptive
    )
    return RunBarSampler(params).label(values)
