"""Tests for kanatype.core.metrics – speed, accuracy and score."""

from __future__ import annotations

import math

import pytest

from kanatype.core.metrics import (
    SpeedWindow,
    accuracy,
    combo_bonus,
    is_fibonacci,
    keys_per_minute,
    score,
)


# ---------------------------------------------------------------------------
# SpeedWindow
# ---------------------------------------------------------------------------

class TestSpeedWindow:
    def test_too_small(self):
        with pytest.raises(ValueError):
            SpeedWindow(1)

    def test_none_until_full(self):
        window = SpeedWindow(3)
        window.push(0.0)
        window.push(1.0)
        assert not window.is_full()
        assert window.keys_per_second() is None

    def test_rate_over_window(self):
        window = SpeedWindow(3)
        for stamp in (0.0, 0.5, 1.0):
            window.push(stamp)
        assert window.keys_per_second() == pytest.approx(2.0)

    def test_keeps_only_latest(self):
        window = SpeedWindow(2)
        for stamp in (0.0, 10.0, 10.5):
            window.push(stamp)
        assert len(window) == 2
        assert window.keys_per_second() == pytest.approx(2.0)

    def test_zero_span_is_infinite(self):
        window = SpeedWindow(2)
        window.push(3.0)
        window.push(3.0)
        assert math.isinf(window.keys_per_second())

    def test_clear(self):
        window = SpeedWindow(2)
        window.push(1.0)
        window.clear()
        assert len(window) == 0
        assert window.size == 2


# ---------------------------------------------------------------------------
# Rates and score
# ---------------------------------------------------------------------------

class TestScore:
    def test_keys_per_minute(self):
        assert keys_per_minute(30, 30.0) == 60.0

    def test_keys_per_minute_without_time(self):
        assert keys_per_minute(10, 0.0) == 0.0

    def test_accuracy(self):
        assert accuracy(1, 4) == 0.75
        assert accuracy(0, 0) == 1.0

    def test_perfect_run(self):
        assert score(60, 0, 60.0) == 6000

    def test_accuracy_is_cubed(self):
        # 60 kpm at 50% accuracy
        assert score(60, 60, 60.0) == 750

    def test_extra_is_added(self):
        assert score(60, 0, 60.0, extra=210) == 6210

    def test_no_time_scores_only_extra(self):
        assert score(5, 0, 0.0, extra=10) == 10


# ---------------------------------------------------------------------------
# Combo bonus
# ---------------------------------------------------------------------------

class TestComboBonus:
    @pytest.mark.parametrize("n", [0, 1, 2, 3, 5, 8, 13, 21, 34, 55, 89, 144])
    def test_fibonacci(self, n: int):
        assert is_fibonacci(n)

    @pytest.mark.parametrize("n", [4, 6, 7, 20, 22, 33, 35, 100])
    def test_not_fibonacci(self, n: int):
        assert not is_fibonacci(n)

    def test_negative(self):
        assert not is_fibonacci(-1)

    def test_small_combos_earn_nothing(self):
        assert combo_bonus(13) == 0
        assert combo_bonus(20) == 0

    def test_fibonacci_combo_above_threshold(self):
        assert combo_bonus(21) == 210
        assert combo_bonus(34) == 340

    def test_other_combos_earn_nothing(self):
        assert combo_bonus(22) == 0
