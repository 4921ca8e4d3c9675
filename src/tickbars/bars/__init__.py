"""Bar sampling layer. Turns a tick stream into bar labels or events."""

from tickbars.bars.base import BarSampler, Constraints, InformationBarParams
from tickbars.bars.imbalance import ImbalanceBarSampler
from tickbars.bars.runs import RunBarSampler
from tickbars.bars.standard import CumulativeSumBarSampler, SymmetricCusumDetector
from tickbars.bars.utils import EWMAEstimator, expected_value, tick_imbalances, tick_rule

__all__ = [
    # Base
    "BarSampler",
    "Constraints",
    "InformationBarParams",
    # Standard (Prado Ch. 2, fixed threshold)
    "CumulativeSumBarSampler",
    "SymmetricCusumDetector",
    # Information-driven (Prado Ch. 2, adaptive)
    "ImbalanceBarSampler",
    "RunBarSampler",
    # Utilities
    "EWMAEstimator",
    "expected_value",
    "tick_imbalances",
    "tick_rule",
]
