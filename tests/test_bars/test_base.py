"""Tests for parameter models and the BarSampler base class."""

import numpy as np
import pytest
from pydantic import ValidationError

from tickbars.bars.base import BarSampler, Constraints, InformationBarParams
from tickbars.errors import MalformedArgumentError


class _EveryOtherTick(BarSampler):
    """Toy sampler: closes a bar on every second tick."""

    def __init__(self) -> None:
        super().__init__()
        self._ticks = 0
        self._bar = 0

    @property
    def sampler_type(self) -> str:
        return "every_other"

    def process_tick(self, value: float) -> int:
        label = self._bar
        self._ticks += 1
        if self._ticks % 2 == 0:
            self._bar += 1
        return label


class TestConstraints:
    def test_clamp(self):
        c = Constraints(min=10, max=20)
        assert c.clamp(5) == 10
        assert c.clamp(15) == 15
        assert c.clamp(25) == 20

    def test_equal_bounds_allowed(self):
        assert Constraints(min=7, max=7).clamp(100) == 7

    def test_bounds_not_ordered_on_their_own(self):
        """Ordering is an adaptive-mode rule, checked by InformationBarParams."""
        c = Constraints(min=20, max=10)
        assert (c.min, c.max) == (20, 10)

    def test_rejects_string_bound(self):
        with pytest.raises(ValidationError):
            Constraints(min="1", max=10)

    def test_numpy_bounds(self):
        c = Constraints(min=np.int64(5), max=np.float32(9.5))
        assert (c.min, c.max) == (5.0, 9.5)

    def test_frozen(self):
        c = Constraints(min=1, max=2)
        with pytest.raises(ValidationError):
            c.min = 0


class TestInformationBarParams:
    def test_defaults(self):
        p = InformationBarParams()
        assert p.num_prev_bars == 3
        assert p.expected_imbalance_window == 10000
        assert p.expected_num_ticks == 20000
        assert p.constraints is None
        assert p.adaptive is False

    def test_constraints_from_pair(self):
        p = InformationBarParams(constraints=(5, 50), adaptive=True)
        assert p.constraints == Constraints(min=5, max=50)

    def test_constraints_pair_needs_two_items(self):
        with pytest.raises(ValidationError, match="pair"):
            InformationBarParams(constraints=(5,), adaptive=True)

    def test_adaptive_requires_constraints(self):
        with pytest.raises(ValidationError, match="required when adaptive"):
            InformationBarParams(adaptive=True)

    def test_fixed_mode_ignores_missing_constraints(self):
        assert InformationBarParams(adaptive=False).constraints is None

    def test_window_truncated(self):
        assert InformationBarParams(expected_imbalance_window=10.9).imbalance_window == 10

    @pytest.mark.parametrize(
        "field, value",
        [
            ("num_prev_bars", 0),
            ("num_prev_bars", -1),
            ("expected_imbalance_window", 0.5),
            ("expected_imbalance_window", float("inf")),
            ("expected_imbalance_window", float("nan")),
            ("expected_num_ticks", 0),
            ("expected_num_ticks", -3),
            ("expected_num_ticks", float("inf")),
        ],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            InformationBarParams(**{field: value})

    @pytest.mark.parametrize(
        "field, value",
        [
            ("num_prev_bars", True),
            ("num_prev_bars", "2"),
            ("num_prev_bars", 2.0),
            ("expected_imbalance_window", "10"),
            ("expected_num_ticks", "2"),
            ("adaptive", "false"),
            ("adaptive", 1),
        ],
    )
    def test_rejects_wrong_type(self, field, value):
        with pytest.raises(ValidationError):
            InformationBarParams(**{field: value})

    def test_accepts_numpy_scalars(self):
        p = InformationBarParams(
            num_prev_bars=np.int64(2),
            expected_imbalance_window=np.float64(10),
            expected_num_ticks=np.int32(4),
            adaptive=np.bool_(False),
        )
        assert p.num_prev_bars == 2
        assert p.imbalance_window == 10
        assert p.adaptive is False

    def test_int_accepted_for_float_fields(self):
        p = InformationBarParams(expected_imbalance_window=10, expected_num_ticks=4)
        assert p.expected_num_ticks == 4.0

    @pytest.mark.parametrize(
        "pair, message",
        [
            ((20, 10), "must not exceed"),
            ((float("nan"), 10), "finite"),
            ((1, float("inf")), "finite"),
        ],
    )
    def test_adaptive_checks_bounds(self, pair, message):
        with pytest.raises(ValidationError, match=message):
            InformationBarParams(constraints=pair, adaptive=True)

    @pytest.mark.parametrize("pair", [(20, 10), (float("nan"), 10), (1, float("inf"))])
    def test_fixed_mode_leaves_bounds_unchecked(self, pair):
        p = InformationBarParams(constraints=pair, adaptive=False)
        assert p.constraints is not None

    def test_fixed_mode_still_needs_a_pair(self):
        with pytest.raises(ValidationError, match="pair"):
            InformationBarParams(constraints=(1, 2, 3), adaptive=False)

    def test_validation_error_is_value_error(self):
        """Callers catching ValueError also catch parameter errors."""
        with pytest.raises(ValueError):
            InformationBarParams(num_prev_bars=0)


class TestBarSampler:
    def test_label_runs_every_tick(self):
        labels = _EveryOtherTick().label([0.0] * 5)
        np.testing.assert_array_equal(labels, [0, 0, 1, 1, 2])
        assert labels.dtype == np.int64

    def test_label_accepts_chunks(self):
        labels = _EveryOtherTick().label([np.zeros(3), np.zeros(2)])
        np.testing.assert_array_equal(labels, [0, 0, 1, 1, 2])

    def test_malformed_input_does_not_consume_sampler(self):
        sampler = _EveryOtherTick()
        with pytest.raises(MalformedArgumentError):
            sampler.label([b"\x00" * 7])
        np.testing.assert_array_equal(sampler.label([0.0, 0.0]), [0, 0])

    def test_single_use(self):
        sampler = _EveryOtherTick()
        sampler.label([0.0])
        with pytest.raises(RuntimeError, match="every_other"):
            sampler.label([0.0])

    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            BarSampler()
