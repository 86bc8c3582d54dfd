"""
Tests for chipstack/counting/periodicity.py

Run with: pytest tests/test_periodicity.py -v
"""

import numpy as np
import pytest

from chipstack.counting.periodicity import (
    CountEstimate,
    autocorrelation,
    centerline_signal,
    count_chips,
    edge_strength,
    find_peak_lag,
    round_half_up,
)
from chipstack.types import Tower, VerticalBounds


class TestHelpers:

    @pytest.mark.parametrize("x,expected", [(2.5, 3), (3.5, 4), (2.49, 2), (0.5, 1), (0.0, 0)])
    def test_round_half_up(self, x, expected):
        assert round_half_up(x) == expected

    def test_centerline_signal_is_channel_mean(self):
        image = np.zeros((3, 5, 3), dtype=np.uint8)
        image[:, 2] = (30, 60, 90)
        assert list(centerline_signal(image, 2)) == [60.0, 60.0, 60.0]

    def test_edge_strength_length(self):
        assert edge_strength(np.arange(10.0)).shape == (9,)
        assert edge_strength(np.array([1.0])).shape == (0,)

    def test_edge_strength_of_constant_is_zero(self):
        assert np.allclose(edge_strength(np.full(50, 7.0)), 0.0)

    def test_edge_strength_without_smoothing(self):
        out = edge_strength(np.array([0.0, 5.0, 2.0]), smoothing_taps=1)
        assert list(out) == [5.0, 3.0]


class TestAutocorrelation:

    def test_flat_signal_gives_zeros(self):
        ac = autocorrelation(np.full(21, 3.0))
        assert ac.shape == (11,)
        assert np.all(ac == 0)

    def test_lag_zero_is_energy(self):
        x = np.array([1.0, -1.0, 2.0, -2.0])
        ac = autocorrelation(x)
        assert ac.shape == (3,)
        assert ac[0] == pytest.approx(np.sum(x ** 2))

    def test_periodic_signal_peaks_at_period(self):
        x = np.zeros(200)
        x[::12] = 1.0
        ac = autocorrelation(x)
        assert find_peak_lag(ac) == 12


class TestFindPeakLag:

    def test_strongest_peak_in_window(self):
        ac = np.zeros(100)
        ac[5] = 100.0     # below lag_min
        ac[20] = 10.0
        ac[40] = 5.0
        assert find_peak_lag(ac, 8, 64) == 20

    def test_no_peak(self):
        assert find_peak_lag(np.zeros(100)) is None
        assert find_peak_lag(np.linspace(10, 0, 100)) is None

    def test_plateau_is_not_a_peak(self):
        ac = np.zeros(100)
        ac[20:22] = 10.0
        assert find_peak_lag(ac) is None

    def test_short_sequence(self):
        assert find_peak_lag(np.array([3.0, 1.0, 2.0])) is None


class TestCountChips:

    def test_counts_periodic_stack(self, single_red_column):
        # Bounds as the boundary detector would report them, padded 10 px
        estimate = count_chips(single_red_column, Tower(0, 30), VerticalBounds(110, 290))
        assert estimate == CountEstimate(count=10, lag=20)
        assert not estimate.fallback

    def test_fallback_thickness_without_periodicity(self):
        flat = np.full((400, 30, 3), 120, dtype=np.uint8)
        estimate = count_chips(flat, Tower(0, 30), VerticalBounds(0, 150))
        assert estimate.fallback
        assert estimate.count == 10

    def test_count_is_at_least_one(self):
        flat = np.full((400, 30, 3), 120, dtype=np.uint8)
        assert count_chips(flat, Tower(0, 30), VerticalBounds(0, 3)).count == 1
