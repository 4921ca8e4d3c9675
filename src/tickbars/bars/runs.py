"""Information-driven run bar sampler (Prado Ch. 2.3.2.3).

Run bars sample when the accumulated one-sided flow of the current bar
exceeds what an average bar is expected to accumulate on its dominant
side:

    max(theta_buy, theta_sell) > E[T] * max(P[b=1] * E[v|b=1],
                                            (1 - P[b=1]) * E[v|b=-1])

Buy ticks (positive values) and sell ticks (negative values, taken as
magnitudes) are tracked separately, each with its own expected size.
P[b=1] is the expected proportion of buy ticks per bar.  Zero-valued
ticks count towards the bar length but towards neither side.
"""

from __future__ import annotations

import logging

from tickbars.bars.base import BarSampler, InformationBarParams
from tickbars.bars.utils import EWMAEstimator, expected_value, trailing

logger = logging.getLogger(__name__)


class RunBarSampler(BarSampler):
    """Label ticks with run bar ids.

    Warm-up lasts until both the buy and the sell side have seen
    ``expected_num_ticks`` ticks; until then every tick is labeled 0.  The
    initial buy proportion is the share of buy ticks over the warm-up.
    After each closed bar both expected sizes, the buy proportion and (in
    adaptive mode) E[T] are re-estimated.
    """

    def __init__(self, params: InformationBarParams) -> None:
        super().__init__()
        self._params = params
        self._bars_ewma = EWMAEstimator(params.num_prev_bars)
        self._expected_num_ticks = params.expected_num_ticks
        self._expected_imbalance_buy = 0.0
        self._expected_imbalance_sell = 0.0
        self._expected_buy_proportion = 0.0
        self._buy_warm = False
        self._sell_warm = False
        self._warm = False

        self._buy_imbalances: list[float] = []
        self._sell_imbalances: list[float] = []
        self._ticks_per_bar: list[float] = []
        self._buy_proportions: list[float] = []
        self._cum_theta_buy = 0.0
        self._cum_theta_sell = 0.0
        self._buy_ticks = 0
        self._cum_ticks = 0
        self._bar_number = 0

    @property
    def sampler_type(self) -> str:
        return "run_ema" if self._params.adaptive else "run_const"

    @property
    def expected_num_ticks(self) -> float:
        return self._expected_num_ticks

    @property
    def expected_buy_proportion(self) -> float:
        return self._expected_buy_proportion

    def process_tick(self, value: float) -> int:
        label = self._bar_number
        self._cum_ticks += 1

        if value > 0:
            self._cum_theta_buy += value
            self._buy_imbalances.append(value)
            self._buy_ticks += 1
        elif value < 0:
            self._cum_theta_sell += -value
            self._sell_imbalances.append(-value)

        if not self._warm:
            self._warm_up()
            if not self._warm:
                return label

        max_proportion = max(
            self._expected_imbalance_buy * self._expected_buy_proportion,
            self._expected_imbalance_sell * (1.0 - self._expected_buy_proportion),
        )
        max_theta = max(self._cum_theta_buy, self._cum_theta_sell)
        if max_theta > self._expected_num_ticks * max_proportion:
            self._close_bar()
        return label

    def _warm_up(self) -> None:
        window = self._params.imbalance_window
        if len(self._buy_imbalances) >= self._expected_num_ticks:
            self._expected_imbalance_buy = expected_value(self._buy_imbalances, window)
            self._buy_warm = True
        if len(self._sell_imbalances) >= self._expected_num_ticks:
            self._expected_imbalance_sell = expected_value(self._sell_imbalances, window)
            self._sell_warm = True

        if self._buy_warm and self._sell_warm:
            self._expected_buy_proportion = self._buy_ticks / self._cum_ticks
            self._warm = True
            logger.debug(
                "Run warm-up complete after %d ticks: E[buy]=%.6f E[sell]=%.6f P[buy]=%.4f",
                self._cum_ticks,
                self._expected_imbalance_buy,
                self._expected_imbalance_sell,
                self._expected_buy_proportion,
            )

    def _close_bar(self) -> None:
        num_prev_bars = self._params.num_prev_bars
        if self._params.adaptive:
            assert self._params.constraints is not None
            self._ticks_per_bar.append(float(self._cum_ticks))
            estimate = self._bars_ewma.estimate(trailing(self._ticks_per_bar, num_prev_bars))
            self._expected_num_ticks = self._params.constraints.clamp(estimate)

        window = self._params.imbalance_window
        self._expected_imbalance_buy = expected_value(self._buy_imbalances, window)
        self._expected_imbalance_sell = expected_value(self._sell_imbalances, window)

        self._buy_proportions.append(self._buy_ticks / self._cum_ticks)
        self._expected_buy_proportion = self._bars_ewma.estimate(
            trailing(self._buy_proportions, num_prev_bars)
        )

        self._cum_theta_buy = 0.0
        self._cum_theta_sell = 0.0
        self._buy_ticks = 0
        self._cum_ticks = 0
        self._bar_number += 1
