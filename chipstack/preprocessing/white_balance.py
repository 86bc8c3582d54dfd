"""
White point estimation and per-channel gain correction.

Bright, unsaturated pixels near the middle of each tower (a white chip face,
a card) are taken as the scene's reference white. The correction is a plain
per-channel gain, enough to undo a warm or cool cast before colour voting.
"""

from typing import Sequence

import numpy as np

from chipstack.classification.color_model import rgb_to_hsl_array
from chipstack.types import Tower, WhitePoint
from chipstack.utils.config import (
    WHITE_BAND_END,
    WHITE_BAND_START,
    WHITE_MAX_SATURATION,
    WHITE_MIN_LIGHTNESS,
    WHITE_ROW_STRIDE,
)
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def estimate_white_point(
    rgb: np.ndarray,
    towers: Sequence[Tower],
    band_start: float = WHITE_BAND_START,
    band_end: float = WHITE_BAND_END,
    row_stride: int = WHITE_ROW_STRIDE,
    min_lightness: float = WHITE_MIN_LIGHTNESS,
    max_saturation: float = WHITE_MAX_SATURATION,
) -> WhitePoint:
    """
    Find the brightest low-saturation pixel on the tower centre lines.

    Args:
        rgb: (H, W, 3) working image
        towers: Towers from the segmenter
        band_start: Fraction of image height where the scan band starts
        band_end: Fraction of image height where it ends (exclusive)
        row_stride: Row spacing within the band
        min_lightness: HSL lightness a candidate must exceed
        max_saturation: HSL saturation a candidate must stay below

    Returns:
        Raw RGB of the best candidate, or the neutral (255, 255, 255) white
        point when nothing qualifies
    """
    if not towers:
        return WhitePoint()

    h = rgb.shape[0]
    rows = np.arange(int(h * band_start), int(h * band_end), row_stride)
    if rows.size == 0:
        return WhitePoint()

    best_lightness = -1.0
    best_rgb = None
    # Towers in order, rows top-down: the first of equally bright pixels wins
    for tower in towers:
        column = rgb[rows, tower.center_x, :3].astype(np.float64)
        hsl = rgb_to_hsl_array(column)
        candidates = (hsl[:, 2] > min_lightness) & (hsl[:, 1] < max_saturation)
        if not candidates.any():
            continue
        idx = np.flatnonzero(candidates)
        local_best = idx[np.argmax(hsl[idx, 2])]
        if hsl[local_best, 2] > best_lightness:
            best_lightness = hsl[local_best, 2]
            best_rgb = column[local_best]

    if best_rgb is None:
        logger.debug("No white reference found, using neutral white point")
        return WhitePoint()

    white = WhitePoint(r=float(best_rgb[0]), g=float(best_rgb[1]), b=float(best_rgb[2]))
    logger.debug("White point (%.0f, %.0f, %.0f), lightness %.1f",
                 white.r, white.g, white.b, best_lightness)
    return white


def apply_white_point(rgb: np.ndarray, white_point: WhitePoint) -> np.ndarray:
    """
    Per-channel gain: ``min(255, raw / white * 255)``.

    Args:
        rgb: (..., 3) pixel values
        white_point: Reference white

    Returns:
        Corrected float64 array of the same shape
    """
    pixels = np.asarray(rgb, dtype=np.float64)
    if white_point.is_neutral:
        return pixels
    white = np.maximum(white_point.as_array(), 1.0)
    return np.minimum(255.0, pixels / white * 255.0)
