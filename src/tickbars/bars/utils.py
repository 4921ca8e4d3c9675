"""Shared utilities for information-driven bar samplers.

Provides the truncated EWMA estimator (for adaptive thresholds), the
trailing-window expectation used by imbalance and run bars, and the tick
rule (for turning a price series into signed imbalances).  These
implement the building blocks described in Prado, *Advances in Financial
Machine Learning*, Ch. 2.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from tickbars.chunks import FLOAT64, ChunkedSequence
from tickbars.errors import MalformedArgumentError


class EWMAEstimator:
    """Exponentially weighted average over a finite slice of history.

    Unlike the textbook recurrence E[t] = a*x + (1-a)*E[t-1], which
    assumes an infinite past, this estimator normalises by the sum of the
    weights actually applied:

        E = sum((1-a)^k * x[n-1-k]) / sum((1-a)^k),  k = 0..n-1

    so a short history is not dragged towards an arbitrary seed value.
    alpha = 2 / (window + 1).
    """

    __slots__ = ("_window", "_alpha")

    def __init__(self, window: int | float) -> None:
        if window < 1:
            raise ValueError(f"EWMA window must be >= 1, got {window}")
        self._window = window
        self._alpha = 2.0 / (window + 1.0)

    @property
    def window(self) -> int | float:
        return self._window

    @property
    def alpha(self) -> float:
        return self._alpha

    def estimate(self, values: Sequence[float]) -> float:
        """Weighted average of ``values``, most recent weighted highest.

        An empty slice has a defined estimate of 0.0.
        """
        if len(values) == 0:
            return 0.0

        decay = 1.0 - self._alpha
        numerator = float(values[0])
        weight = 1.0
        for i in range(1, len(values)):
            weight += decay**i
            numerator = numerator * decay + values[i]
        return numerator / weight

    def __repr__(self) -> str:
        return f"EWMAEstimator(window={self._window}, alpha={self._alpha:.4f})"


def trailing(history: Sequence[float], count: int) -> Sequence[float]:
    """The last ``count`` entries of ``history`` (all of them if fewer)."""
    start = len(history) - count if len(history) >= count else 0
    return history[start:]


def expected_value(history: Sequence[float], window: int) -> float:
    """EWMA of the trailing ``window`` entries of ``history``.

    While the history is shorter than the window (warm-up), the whole
    history is used and the EWMA decay is derived from its actual length.
    """
    effective_window = min(len(history), window)
    if effective_window == 0:
        return 0.0
    return EWMAEstimator(effective_window).estimate(trailing(history, window))


def tick_rule(price: float, prev_price: float, prev_sign: int) -> int:
    """Infer trade direction from price movement (the tick rule).

    Returns:
        +1 if price > prev_price (uptick),
        -1 if price < prev_price (downtick),
        prev_sign if price == prev_price (carry forward).
    """
    if price > prev_price:
        return 1
    elif price < prev_price:
        return -1
    return prev_sign


def tick_imbalances(prices: Any, volumes: Any = None) -> np.ndarray:
    """Signed per-tick imbalances from a price series.

    Each tick is signed with the tick rule (the first tick, having no
    predecessor, is treated as a buy) and multiplied by its volume when
    ``volumes`` is given, yielding the input the imbalance and run
    samplers expect: +/-1 per tick, or +/-volume per tick.
    """
    price_seq = ChunkedSequence.coerce(prices, FLOAT64)
    out = np.empty(len(price_seq), dtype=np.float64)

    prev_price: float | None = None
    sign = 1
    for i, price in enumerate(price_seq):
        if prev_price is not None:
            sign = tick_rule(price, prev_price, sign)
        prev_price = price
        out[i] = sign

    if volumes is not None:
        volume_seq = ChunkedSequence.coerce(volumes, FLOAT64)
        if len(volume_seq) != len(price_seq):
            raise MalformedArgumentError(
                f"Got {len(volume_seq)} volumes for {len(price_seq)} prices"
            )
        out *= volume_seq.to_array()
    return out
