"""
Tests for chipstack/detection/segmenter.py

Run with: pytest tests/test_segmenter.py -v
"""

import numpy as np
import pytest

from chipstack.classification.color_model import luma
from chipstack.detection.segmenter import (
    adaptive_threshold,
    compute_edge_profile,
    find_towers,
    segment_towers,
    smooth_profile,
)
from chipstack.types import Tower


class TestEdgeProfile:

    def test_flat_image_has_no_energy(self):
        profile = compute_edge_profile(np.full((100, 40), 77.0))
        assert profile.shape == (40,)
        assert np.all(profile == 0)

    def test_differences_at_noise_floor_are_ignored(self):
        img = np.zeros((100, 10))
        img[50:, :] = 10.0
        assert np.all(compute_edge_profile(img, edge_noise_floor=10.0) == 0)

    def test_single_step_counted_once(self):
        img = np.zeros((100, 4))
        img[50:, 2] = 50.0
        profile = compute_edge_profile(img)
        # Row 50 is the only sampled row whose comparison spans the step
        assert list(profile) == [0.0, 0.0, 50.0, 0.0]

    def test_image_shorter_than_borders(self):
        assert np.all(compute_edge_profile(np.zeros((15, 5))) == 0)


class TestSmoothAndThreshold:

    def test_constant_profile_unchanged_at_edges(self):
        smoothed = smooth_profile(np.full(50, 3.0), radius=10)
        assert np.allclose(smoothed, 3.0)

    def test_radius_zero_is_identity(self):
        profile = np.arange(10, dtype=float)
        assert np.array_equal(smooth_profile(profile, radius=0), profile)

    def test_threshold_scales_mean(self):
        assert adaptive_threshold(np.array([1.0, 2.0, 3.0]), 0.8) == pytest.approx(1.6)

    def test_threshold_of_empty_profile(self):
        assert adaptive_threshold(np.zeros(0)) == 0.0


class TestFindTowers:

    def test_width_must_exceed_minimum(self):
        profile = np.zeros(100)
        profile[10:31] = 1.0    # 21 wide: accepted
        profile[50:70] = 1.0    # 20 wide: rejected
        assert find_towers(profile, 0.5, min_tower_width=20) == [Tower(10, 31)]

    def test_run_open_at_right_edge(self):
        profile = np.zeros(100)
        profile[79:] = 1.0
        assert find_towers(profile, 0.5) == [Tower(79, 100)]

    def test_threshold_is_strict(self):
        profile = np.full(50, 2.0)
        assert find_towers(profile, 2.0) == []

    def test_towers_are_ordered_and_disjoint(self):
        profile = np.zeros(200)
        profile[20:60] = 5.0
        profile[100:150] = 5.0
        towers = find_towers(profile, 1.0)
        assert [t.start_x for t in towers] == [20, 100]
        assert all(a.end_x <= b.start_x for a, b in zip(towers, towers[1:]))


class TestSegmentTowers:

    def test_finds_both_bars(self, striped_bars_luma):
        towers, smoothed, threshold = segment_towers(striped_bars_luma)
        assert len(towers) == 2
        assert abs(towers[0].start_x - 50) <= 10
        assert abs(towers[0].end_x - 110) <= 10
        assert abs(towers[1].start_x - 180) <= 10
        assert abs(towers[1].end_x - 240) <= 10
        assert smoothed.shape == (300,)
        assert threshold > 0

    def test_flat_image_has_no_towers(self):
        towers, smoothed, threshold = segment_towers(np.full((200, 300), 50.0))
        assert towers == []
        assert threshold == 0.0

    def test_narrow_bar_is_rejected(self, striped_bars_luma):
        luma = np.zeros_like(striped_bars_luma)
        luma[:, 100:105] = striped_bars_luma[:, 50:55]
        towers, _, _ = segment_towers(luma, smoothing_radius=0)
        assert towers == []

    def test_solid_coloured_bars(self):
        # Red and blue bars over rows 100-500 of a 600 px tall black canvas
        rgb = np.zeros((600, 300, 3), dtype=np.uint8)
        rgb[100:500, 50:110] = (200, 30, 30)
        rgb[100:500, 190:230] = (30, 30, 200)

        towers, _, _ = segment_towers(luma(rgb))

        assert len(towers) == 2
        first, second = towers
        assert first.start_x < first.end_x <= second.start_x < second.end_x
        assert abs(first.start_x - 50) <= 10 and abs(first.end_x - 110) <= 10
        assert abs(second.start_x - 190) <= 10 and abs(second.end_x - 230) <= 10
