"""Parameter models and the abstract bar sampler.

Every labeling sampler (cumulative-sum, imbalance, run) shares the same
output contract: one bar id per input tick, in tick order.  This module
provides that common driver plus the validated parameter models the
information-driven samplers are configured with.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import numpy as np
from pydantic import BaseModel, Field, StrictBool, StrictInt, field_validator, model_validator

from tickbars.chunks import FLOAT64, ChunkedSequence


def _unwrap_numpy(value: Any) -> Any:
    """numpy scalars become the matching Python scalar; anything else passes."""
    if isinstance(value, np.generic):
        return value.item()
    return value


class Constraints(BaseModel):
    """Clamp bounds for the adaptive expected-ticks-per-bar estimate.

    The bounds are only checked (finite, min <= max) by
    InformationBarParams in adaptive mode; a fixed-mode sampler never
    reads them.
    """

    min: float = Field(strict=True, description="Lowest allowed expected number of ticks per bar")
    max: float = Field(strict=True, description="Highest allowed expected number of ticks per bar")

    model_config = {"frozen": True}

    @field_validator("min", "max", mode="before")
    @classmethod
    def _numpy_scalars(cls, value: Any) -> Any:
        return _unwrap_numpy(value)

    def clamp(self, value: float) -> float:
        return min(self.max, max(value, self.min))


class InformationBarParams(BaseModel):
    """Parameters shared by imbalance and run bar samplers.

    expected_imbalance_window is accepted as a float and truncated to an
    integer window, matching how callers usually pass it alongside the
    other float parameters.  Types are checked strictly: strings are not
    parsed and bools are not counted as integers.
    """

    num_prev_bars: StrictInt = Field(
        default=3,
        ge=1,
        description="Closed bars the expected tick count and buy proportion average over",
    )
    expected_imbalance_window: float = Field(
        default=10000,
        ge=1,
        strict=True,
        allow_inf_nan=False,
        description="Trailing ticks the expected imbalance averages over",
    )
    expected_num_ticks: float = Field(
        default=20000,
        gt=0,
        strict=True,
        allow_inf_nan=False,
        description="Warm-up length and initial expected ticks per bar",
    )
    constraints: Constraints | None = Field(
        default=None, description="Clamp bounds for expected_num_ticks (adaptive mode only)"
    )
    adaptive: StrictBool = Field(
        default=False, description="Recalibrate expected_num_ticks after every closed bar"
    )

    model_config = {"frozen": True}

    @field_validator(
        "num_prev_bars", "expected_imbalance_window", "expected_num_ticks", "adaptive",
        mode="before",
    )
    @classmethod
    def _numpy_scalars(cls, value: Any) -> Any:
        return _unwrap_numpy(value)

    @field_validator("constraints", mode="before")
    @classmethod
    def _pair_to_constraints(cls, value: Any) -> Any:
        if isinstance(value, Sequence) and not isinstance(value, str):
            if len(value) != 2:
                raise ValueError(
                    f"constraints must be a (min, max) pair, got {len(value)} items"
                )
            return {"min": value[0], "max": value[1]}
        return value

    @model_validator(mode="after")
    def _check_adaptive_constraints(self) -> InformationBarParams:
        if not self.adaptive:
            return self
        if self.constraints is None:
            raise ValueError("constraints are required when adaptive is enabled")
        low, high = self.constraints.min, self.constraints.max
        if not (math.isfinite(low) and math.isfinite(high)):
            raise ValueError(f"constraints must be finite, got ({low}, {high})")
        if low > high:
            raise ValueError(f"constraints min ({low}) must not exceed max ({high})")
        return self

    @property
    def imbalance_window(self) -> int:
        return int(self.expected_imbalance_window)


class BarSampler(ABC):
    """Abstract base class for per-tick bar labelers.

    Subclasses implement process_tick() with their specific closing rule.
    A sampler owns the running state of exactly one pass over one tick
    stream: label() may be called once, and every call of the public
    functions builds a fresh sampler, so no state survives between calls.
    """

    def __init__(self) -> None:
        self._consumed = False

    @property
    @abstractmethod
    def sampler_type(self) -> str:
        """Label for this sampler, e.g. 'cusum_2.0', 'imbalance_ema'."""
        ...

    @abstractmethod
    def process_tick(self, value: float) -> int:
        """Process one tick. Returns the id of the bar the tick belongs to.

        The tick that closes a bar is labeled with the bar it closes; the
        next tick gets the new id.
        """
        ...

    def label(self, values: Any) -> np.ndarray:
        """Label every tick of ``values`` with its bar id (int64 array)."""
        if self._consumed:
            raise RuntimeError(f"{self.sampler_type} sampler has already been used")
        ticks = ChunkedSequence.coerce(values, FLOAT64)
        self._consumed = True

        labels = np.empty(len(ticks), dtype=np.int64)
        for i, value in enumerate(ticks):
            labels[i] = self.process_tick(value)
        return labels
