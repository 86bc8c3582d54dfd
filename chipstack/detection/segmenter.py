"""
Horizontal segmentation of a photo into towers.

Stacked chips are full of horizontal rim edges, the felt between stacks is
not. Summing vertical luma changes per column gives an edge-energy profile
whose hills are the towers.
"""

from typing import List, Tuple

import numpy as np
from scipy.ndimage import uniform_filter1d

from chipstack.types import Tower
from chipstack.utils.config import (
    EDGE_NOISE_FLOOR,
    MIN_TOWER_WIDTH,
    NOISE_FLOOR_MULTIPLIER,
    PROFILE_SMOOTHING_RADIUS,
    SEGMENT_BORDER_PX,
    SEGMENT_ROW_OFFSET,
    SEGMENT_ROW_STRIDE,
)
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def compute_edge_profile(
    luma_image: np.ndarray,
    border: int = SEGMENT_BORDER_PX,
    row_stride: int = SEGMENT_ROW_STRIDE,
    row_offset: int = SEGMENT_ROW_OFFSET,
    edge_noise_floor: float = EDGE_NOISE_FLOOR,
) -> np.ndarray:
    """
    Per-column sum of vertical luma differences above the noise floor.

    For every column x, accumulates ``|luma(y, x) - luma(y - row_offset, x)|``
    over rows ``y = border, border + row_stride, ...`` below ``h - border``,
    skipping differences of ``edge_noise_floor`` or less.

    Args:
        luma_image: 2D float array
        border: Rows skipped at top and bottom
        row_stride: Row sampling step
        row_offset: Distance to the compared row above
        edge_noise_floor: Differences at or below this are treated as noise

    Returns:
        1D float64 array of length W
    """
    img = np.asarray(luma_image, dtype=np.float64)
    h, w = img.shape[:2]

    start = max(border, row_offset)
    rows = np.arange(start, h - border, row_stride)
    if rows.size == 0:
        return np.zeros(w, dtype=np.float64)

    diffs = np.abs(img[rows, :] - img[rows - row_offset, :])
    diffs[diffs <= edge_noise_floor] = 0.0
    return diffs.sum(axis=0)


def smooth_profile(profile: np.ndarray, radius: int = PROFILE_SMOOTHING_RADIUS) -> np.ndarray:
    """
    Centred moving average of width ``2 * radius + 1``.

    Near the ends the window is truncated and the average is taken over the
    samples that exist, so edges are not pulled towards zero.
    """
    values = np.asarray(profile, dtype=np.float64)
    if radius <= 0 or values.size == 0:
        return values.copy()

    size = 2 * radius + 1
    window_sum = uniform_filter1d(values, size=size, mode='constant', cval=0.0)
    window_count = uniform_filter1d(np.ones_like(values), size=size, mode='constant', cval=0.0)
    return window_sum / window_count


def adaptive_threshold(
    smoothed: np.ndarray,
    noise_floor_multiplier: float = NOISE_FLOOR_MULTIPLIER,
) -> float:
    """Threshold as a fraction of the mean smoothed energy."""
    if smoothed.size == 0:
        return 0.0
    return float(noise_floor_multiplier * np.mean(smoothed))


def find_towers(
    smoothed: np.ndarray,
    threshold: float,
    min_tower_width: int = MIN_TOWER_WIDTH,
) -> List[Tower]:
    """
    Runs of columns strictly above ``threshold`` that are wide enough.

    A run is accepted when ``end - start > min_tower_width``; a run still
    open at the right edge closes at the profile length.

    Returns:
        Towers ordered left to right, non-overlapping
    """
    towers: List[Tower] = []
    above = np.asarray(smoothed) > threshold

    start = None
    for x, is_above in enumerate(above):
        if is_above and start is None:
            start = x
        elif not is_above and start is not None:
            if x - start > min_tower_width:
                towers.append(Tower(start_x=start, end_x=x))
            start = None

    if start is not None and len(above) - start > min_tower_width:
        towers.append(Tower(start_x=start, end_x=len(above)))

    return towers


def segment_towers(
    luma_image: np.ndarray,
    border: int = SEGMENT_BORDER_PX,
    row_stride: int = SEGMENT_ROW_STRIDE,
    row_offset: int = SEGMENT_ROW_OFFSET,
    edge_noise_floor: float = EDGE_NOISE_FLOOR,
    smoothing_radius: int = PROFILE_SMOOTHING_RADIUS,
    noise_floor_multiplier: float = NOISE_FLOOR_MULTIPLIER,
    min_tower_width: int = MIN_TOWER_WIDTH,
) -> Tuple[List[Tower], np.ndarray, float]:
    """
    Full segmentation: profile, smoothing, threshold, hill extraction.

    Returns:
        Tuple of (towers, smoothed profile, threshold). The profile and
        threshold are returned for the debug overlay.
    """
    profile = compute_edge_profile(
        luma_image,
        border=border,
        row_stride=row_stride,
        row_offset=row_offset,
        edge_noise_floor=edge_noise_floor,
    )
    smoothed = smooth_profile(profile, radius=smoothing_radius)
    threshold = adaptive_threshold(smoothed, noise_floor_multiplier)
    towers = find_towers(smoothed, threshold, min_tower_width=min_tower_width)

    logger.debug(
        "Edge profile mean %.1f, threshold %.1f, %d tower(s)",
        float(np.mean(smoothed)) if smoothed.size else 0.0, threshold, len(towers),
    )
    return towers, smoothed, threshold
