"""
Vertical extent of a tower from intensity ledges on its centre line.
"""

import numpy as np

from chipstack.types import Tower, VerticalBounds
from chipstack.utils.config import (
    FALLBACK_BAND_BOTTOM,
    FALLBACK_BAND_TOP,
    LEDGE_OFFSET,
    LEDGE_PADDING,
    LEDGE_SCAN_END,
    LEDGE_SCAN_START,
    LEDGE_THRESHOLD,
)
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def find_top_ledge(
    column: np.ndarray,
    start: int,
    stop: int,
    ledge_offset: int = LEDGE_OFFSET,
    ledge_threshold: float = LEDGE_THRESHOLD,
) -> int:
    """
    First row y in [start, stop) with ``|column[y + offset] - column[y]| > threshold``.

    Returns:
        Row index, or -1 if no ledge is found
    """
    n = column.shape[0]
    stop = min(stop, n - ledge_offset)
    if stop <= start:
        return -1
    rows = np.arange(max(start, 0), stop)
    jumps = np.abs(column[rows + ledge_offset] - column[rows]) > ledge_threshold
    hits = np.flatnonzero(jumps)
    return int(rows[hits[0]]) if hits.size else -1


def find_bottom_ledge(
    column: np.ndarray,
    start: int,
    stop: int,
    ledge_offset: int = LEDGE_OFFSET,
    ledge_threshold: float = LEDGE_THRESHOLD,
) -> int:
    """
    Scanning upward from ``start`` down to ``stop`` (exclusive), the first row
    y with ``|column[y] - column[y - offset]| > threshold``.

    Returns:
        Row index, or -1 if no ledge is found
    """
    n = column.shape[0]
    start = min(start, n - 1)
    stop = max(stop, ledge_offset - 1)
    if start <= stop:
        return -1
    rows = np.arange(start, stop, -1)
    jumps = np.abs(column[rows] - column[rows - ledge_offset]) > ledge_threshold
    hits = np.flatnonzero(jumps)
    return int(rows[hits[0]]) if hits.size else -1


def detect_vertical_bounds(
    luma_image: np.ndarray,
    tower: Tower,
    scan_start: float = LEDGE_SCAN_START,
    scan_end: float = LEDGE_SCAN_END,
    ledge_offset: int = LEDGE_OFFSET,
    ledge_threshold: float = LEDGE_THRESHOLD,
    padding: int = LEDGE_PADDING,
    fallback_top: float = FALLBACK_BAND_TOP,
    fallback_bottom: float = FALLBACK_BAND_BOTTOM,
) -> VerticalBounds:
    """
    Find the top and bottom of a stack on the tower's centre column.

    The top ledge is searched downward from ``scan_start * h``, the bottom
    ledge upward from ``scan_end * h``. Both are then padded inward by
    ``padding`` rows so the ledge pixels themselves are excluded. A missing
    top ledge leaves the top at ``scan_end * h`` and a missing bottom ledge
    leaves the bottom at ``scan_start * h``, which always triggers the
    fallback band.

    Args:
        luma_image: 2D float array
        tower: Tower whose centre column is scanned

    Returns:
        VerticalBounds with top < bottom, both inside the image
    """
    h = luma_image.shape[0]
    column = np.asarray(luma_image[:, tower.center_x], dtype=np.float64)

    scan_top = int(h * scan_start)
    scan_bottom = int(h * scan_end)

    top = find_top_ledge(column, scan_top, scan_bottom, ledge_offset, ledge_threshold)
    bottom = find_bottom_ledge(column, scan_bottom, scan_top, ledge_offset, ledge_threshold)
    if top < 0:
        top = scan_bottom
    if bottom < 0:
        bottom = scan_top

    top += padding
    bottom -= padding

    if bottom <= top:
        fb_top = int(h * fallback_top)
        fb_bottom = max(int(h * fallback_bottom), fb_top + 1)
        logger.debug(
            "Tower at x=%d: no usable ledges (top=%d, bottom=%d), using band %d-%d",
            tower.center_x, top, bottom, fb_top, fb_bottom,
        )
        return VerticalBounds(top=fb_top, bottom=min(fb_bottom, h), fallback=True)

    return VerticalBounds(top=max(top, 0), bottom=min(bottom, h))
