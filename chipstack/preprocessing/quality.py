"""
Sharpness gate for incoming photos.

A blurred photo smears the chip rims the counter relies on. The gate scores
sharpness as the variance of a 4-neighbour Laplacian over luma and flags,
but never rejects, photos below the threshold.
"""

from typing import Optional, Tuple

import numpy as np

from chipstack.classification.color_model import luma
from chipstack.utils.config import BLUR_THRESHOLD, BLUR_WARNING, LAPLACIAN_SAMPLE_STRIDE
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def compute_sharpness(
    luma_image: np.ndarray,
    sample_stride: int = LAPLACIAN_SAMPLE_STRIDE,
) -> float:
    """
    Variance of the discrete Laplacian, sampled on a coarse grid.

    The Laplacian is N + S + E + W - 4 * centre, evaluated every
    ``sample_stride`` rows and columns starting one pixel in from the border.

    Args:
        luma_image: 2D float array of luma values
        sample_stride: Grid spacing in pixels

    Returns:
        Population variance of the sampled Laplacian values (0.0 if the
        image is too small to sample)
    """
    img = np.asarray(luma_image, dtype=np.float64)
    h, w = img.shape[:2]
    if h < 3 or w < 3:
        return 0.0

    ys = np.arange(1, h - 1, sample_stride)
    xs = np.arange(1, w - 1, sample_stride)
    rows = ys[:, None]
    cols = xs[None, :]

    laplacian = (
        img[rows - 1, cols]
        + img[rows + 1, cols]
        + img[rows, cols - 1]
        + img[rows, cols + 1]
        - 4.0 * img[rows, cols]
    )
    return float(np.var(laplacian))


def assess_quality(
    rgb: np.ndarray,
    blur_threshold: float = BLUR_THRESHOLD,
    sample_stride: int = LAPLACIAN_SAMPLE_STRIDE,
) -> Tuple[float, Optional[str]]:
    """
    Score an RGB working image and decide whether to warn.

    Args:
        rgb: (H, W, 3) image
        blur_threshold: Scores strictly below this produce a warning
        sample_stride: Laplacian sampling grid spacing

    Returns:
        Tuple of (sharpness score, warning text or None)
    """
    score = compute_sharpness(luma(rgb), sample_stride=sample_stride)
    if score < blur_threshold:
        logger.warning("Sharpness %.1f below threshold %.1f", score, blur_threshold)
        return score, BLUR_WARNING
    logger.debug("Sharpness %.1f", score)
    return score, None
