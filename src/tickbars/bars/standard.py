"""Fixed-threshold cumulative-sum samplers.

These sample on a fixed threshold of accumulated value (Prado Ch. 2):
the cumulative-sum bar labeler cuts a new bar whenever the running sum
reaches the threshold, and the symmetric CUSUM filter (Prado Ch. 2.5.2.1)
reports the positions where either a positive or a negative run of
values has drifted past the threshold.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from tickbars.bars.base import BarSampler
from tickbars.chunks import FLOAT64, ChunkedSequence


class CumulativeSumBarSampler(BarSampler):
    """Emit a new bar every time the running sum reaches the threshold.

    Bar ids start at 1.  There is no warm-up: the rule is fixed.
    """

    def __init__(self, threshold: float) -> None:
        super().__init__()
        self._threshold = threshold
        self._cum_value = 0.0
        self._bar_number = 1

    @property
    def sampler_type(self) -> str:
        return f"cusum_{self._threshold}"

    def process_tick(self, value: float) -> int:
        label = self._bar_number
        self._cum_value += value
        if self._cum_value >= self._threshold:
            self._cum_value = 0.0
            self._bar_number += 1
        return label


class SymmetricCusumDetector:
    """Two-sided CUSUM filter emitting the positions of threshold crossings.

    Keeps a positive run clamped at >= 0 and a negative run clamped at
    <= 0.  A tick fires at most one event: the negative side is checked
    first, and only the side that fired is reset.
    """

    def __init__(self, threshold: float) -> None:
        self._threshold = threshold
        self._csp = 0.0
        self._csn = 0.0
        self._consumed = False

    @property
    def sampler_type(self) -> str:
        return f"cusum_events_{self._threshold}"

    def process_tick(self, value: float) -> bool:
        """Process one tick. Returns True if it fires an event."""
        self._csp = max(0.0, self._csp + value)
        self._csn = min(0.0, self._csn + value)

        if self._csn < -self._threshold:
            self._csn = 0.0
            return True
        elif self._csp > self._threshold:
            self._csp = 0.0
            return True
        return False

    def detect(self, values: Any) -> np.ndarray:
        """Positions (int64) of every tick that fired an event."""
        if self._consumed:
            raise RuntimeError(f"{self.sampler_type} detector has already been used")
        ticks = ChunkedSequence.coerce(values, FLOAT64)
        self._consumed = True

        # At most one event per tick, so len(ticks) is an upper bound.
        events = np.empty(len(ticks), dtype=np.int64)
        count = 0
        for position, value in enumerate(ticks):
            if self.process_tick(value):
                events[count] = position
                count += 1
        return events[:count].copy()
