"""
Tests for chipstack/detection/boundaries.py

Run with: pytest tests/test_boundaries.py -v
"""

import numpy as np

from chipstack.detection.boundaries import (
    detect_vertical_bounds,
    find_bottom_ledge,
    find_top_ledge,
)
from chipstack.types import Tower, VerticalBounds


def _block_luma(top=200, bottom=400, height=600, width=50, inside=150.0, outside=30.0):
    luma = np.full((height, width), outside)
    luma[top:bottom, :] = inside
    return luma


class TestLedges:

    def test_top_ledge_is_offset_before_the_step(self):
        column = _block_luma()[:, 0]
        assert find_top_ledge(column, 60, 540) == 195

    def test_bottom_ledge_is_offset_after_the_step(self):
        column = _block_luma()[:, 0]
        assert find_bottom_ledge(column, 540, 60) == 404

    def test_no_ledge(self):
        column = np.full(600, 80.0)
        assert find_top_ledge(column, 60, 540) == -1
        assert find_bottom_ledge(column, 540, 60) == -1

    def test_small_jumps_are_ignored(self):
        column = _block_luma(inside=50.0)[:, 0]
        assert find_top_ledge(column, 60, 540) == -1


class TestDetectVerticalBounds:

    def test_padded_inward(self):
        bounds = detect_vertical_bounds(_block_luma(), Tower(0, 50))
        assert bounds == VerticalBounds(top=205, bottom=394, fallback=False)

    def test_uses_centre_column(self):
        luma = np.full((600, 50), 30.0)
        luma[200:400, 20:30] = 150.0
        bounds = detect_vertical_bounds(luma, Tower(0, 50))
        assert not bounds.fallback
        # Centre column 25 sees the block; a tower centred elsewhere does not
        assert detect_vertical_bounds(luma, Tower(0, 10)).fallback

    def test_fallback_band_without_ledges(self):
        bounds = detect_vertical_bounds(np.full((600, 50), 30.0), Tower(0, 50))
        assert bounds == VerticalBounds(top=120, bottom=480, fallback=True)

    def test_fallback_when_ledges_cross(self):
        # Stack so short the padded bounds would invert
        bounds = detect_vertical_bounds(_block_luma(top=300, bottom=305), Tower(0, 50))
        assert bounds.fallback
        assert bounds.top < bounds.bottom

    def test_bounds_inside_image(self):
        bounds = detect_vertical_bounds(_block_luma(top=0, bottom=600), Tower(0, 50))
        assert 0 <= bounds.top < bounds.bottom <= 600
