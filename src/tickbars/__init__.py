"""tickbars: streaming bar sampling over financial tick data."""

from tickbars.api import (
    compute_imbalance_bars,
    compute_run_bars,
    cumulative_sum_with_reset,
    information_bar_params,
    searchsorted,
    symmetric_cumulative_sum_with_reset,
)
from tickbars.bars import Constraints, InformationBarParams, tick_imbalances
from tickbars.chunks import ChunkedSequence
from tickbars.errors import MalformedArgumentError, TickbarsError

__version__ = "0.1.0"

__all__ = [
    "ChunkedSequence",
    "Constraints",
    "InformationBarParams",
    "MalformedArgumentError",
    "TickbarsError",
    "compute_imbalance_bars",
    "compute_run_bars",
    "cumulative_sum_with_reset",
    "information_bar_params",
    "searchsorted",
    "symmetric_cumulative_sum_with_reset",
    "tick_imbalances",
]
