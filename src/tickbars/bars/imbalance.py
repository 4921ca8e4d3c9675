"""Information-driven imbalance bar sampler (Prado Ch. 2.3.2.1).

Imbalance bars sample when the signed cumulative imbalance of the current
bar exceeds what an average bar is expected to accumulate:

    |theta_T| > E[T] * |E[b]|

E[b] is an EWMA of recent per-tick imbalances and E[T] the expected
number of ticks per bar.  This makes them sensitive to informed trading:
bars "speed up" when order flow becomes one-sided.  Input ticks are the
signed per-tick contributions (+/-1, +/-volume or +/-dollar volume).
"""

from __future__ import annotations

import logging

from tickbars.bars.base import BarSampler, InformationBarParams
from tickbars.bars.utils import EWMAEstimator, expected_value, trailing

logger = logging.getLogger(__name__)


class ImbalanceBarSampler(BarSampler):
    """Label ticks with imbalance bar ids.

    Until the first ``expected_num_ticks`` ticks have been seen there is
    no expected imbalance, so every tick is labeled 0 and no bar closes.
    In adaptive mode E[T] is re-estimated after each closed bar from the
    tick counts of the last ``num_prev_bars`` bars, clamped to the
    configured constraints; otherwise E[T] stays fixed.
    """

    def __init__(self, params: InformationBarParams) -> None:
        super().__init__()
        self._params = params
        self._ticks_ewma = EWMAEstimator(params.num_prev_bars)
        self._expected_num_ticks = params.expected_num_ticks
        self._expected_imbalance = 0.0
        self._warm = False

        self._imbalances: list[float] = []
        self._ticks_per_bar: list[float] = []
        self._cum_theta = 0.0
        self._cum_ticks = 0
        self._bar_number = 0

    @property
    def sampler_type(self) -> str:
        return "imbalance_ema" if self._params.adaptive else "imbalance_const"

    @property
    def expected_num_ticks(self) -> float:
        return self._expected_num_ticks

    @property
    def expected_imbalance(self) -> float:
        return self._expected_imbalance

    def process_tick(self, value: float) -> int:
        label = self._bar_number
        self._imbalances.append(value)
        self._cum_theta += value
        self._cum_ticks += 1

        if not self._warm:
            if self._cum_ticks < self._expected_num_ticks:
                return label
            self._expected_imbalance = expected_value(
                self._imbalances, self._params.imbalance_window
            )
            self._warm = True
            logger.debug(
                "Imbalance warm-up complete after %d ticks: E[b]=%.6f",
                self._cum_ticks,
                self._expected_imbalance,
            )

        threshold = self._expected_num_ticks * abs(self._expected_imbalance)
        if abs(self._cum_theta) > threshold:
            self._close_bar()
        return label

    def _close_bar(self) -> None:
        if self._params.adaptive:
            assert self._params.constraints is not None
            self._ticks_per_bar.append(float(self._cum_ticks))
            estimate = self._ticks_ewma.estimate(
                trailing(self._ticks_per_bar, self._params.num_prev_bars)
            )
            self._expected_num_ticks = self._params.constraints.clamp(estimate)

        self._expected_imbalance = expected_value(
            self._imbalances, self._params.imbalance_window
        )
        self._cum_theta = 0.0
        self._cum_ticks = 0
        self._bar_number += 1
