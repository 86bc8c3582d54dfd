"""
Chip counting from the periodicity of rim edges along a tower's centre line.

Every chip contributes one rim, so the edge-strength signal down the centre
of a stack repeats once per chip thickness. The dominant autocorrelation lag
is that thickness in pixels; stack height divided by it is the count.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.ndimage import uniform_filter1d

from chipstack.types import Tower, VerticalBounds
from chipstack.utils.config import (
    DEFAULT_CHIP_THICKNESS,
    LAG_MAX,
    LAG_MIN,
    LEDGE_PADDING,
    SIGNAL_SMOOTHING_TAPS,
)
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)

# Signals whose range is below this are numerically flat (smoothing residue)
FLAT_SIGNAL_TOLERANCE = 1e-9


@dataclass(frozen=True)
class CountEstimate:
    """
    Attributes:
        count: Estimated chips, always >= 1
        lag: Detected chip thickness in pixels, None when the fallback was used
    """
    count: int
    lag: Optional[int] = None

    @property
    def fallback(self) -> bool:
        return self.lag is None


def round_half_up(x: float) -> int:
    """Round to nearest integer, halves away from zero for positive x."""
    return int(math.floor(x + 0.5))


def centerline_signal(rgb: np.ndarray, x: int) -> np.ndarray:
    """Mean of R, G and B per row at column ``x``, over the full image height."""
    return np.asarray(rgb[:, x, :3], dtype=np.float64).mean(axis=1)


def edge_strength(signal: np.ndarray, smoothing_taps: int = SIGNAL_SMOOTHING_TAPS) -> np.ndarray:
    """
    Absolute first difference of the centred moving average of ``signal``.

    The window is truncated at both ends. Output has one element fewer than
    the input.
    """
    values = np.asarray(signal, dtype=np.float64)
    if values.size < 2:
        return np.zeros(0, dtype=np.float64)
    if smoothing_taps > 1:
        window_sum = uniform_filter1d(values, size=smoothing_taps, mode='constant', cval=0.0)
        window_count = uniform_filter1d(
            np.ones_like(values), size=smoothing_taps, mode='constant', cval=0.0
        )
        values = window_sum / window_count
    return np.abs(np.diff(values))


def autocorrelation(x: np.ndarray) -> np.ndarray:
    """
    Unnormalised autocorrelation of the mean-removed sequence.

    ``ac[lag] = sum_i (x[i] - m) * (x[i + lag] - m)`` for lag in 0..n//2.
    """
    values = np.asarray(x, dtype=np.float64)
    n = values.size
    if n == 0:
        return np.zeros(0, dtype=np.float64)
    if np.ptp(values) < FLAT_SIGNAL_TOLERANCE:
        return np.zeros(n // 2 + 1, dtype=np.float64)
    centered = values - values.mean()
    max_lag = n // 2
    full = np.correlate(centered, centered, mode='full')
    # full[n - 1 + k] is the sum for lag k
    return full[n - 1: n + max_lag]


def find_peak_lag(
    ac: np.ndarray,
    lag_min: int = LAG_MIN,
    lag_max: int = LAG_MAX,
) -> Optional[int]:
    """
    Strongest strict local maximum of ``ac`` with lag in [lag_min, lag_max].

    A lag qualifies when ``ac[lag] > ac[lag - 1]`` and ``ac[lag] > ac[lag + 1]``.
    Among qualifying lags the one with the largest value wins; equal values
    keep the smaller lag.

    Returns:
        The lag, or None if there is no local maximum in the window
    """
    lo = max(lag_min, 1)
    hi = min(lag_max, ac.size - 2)
    if hi < lo:
        return None

    lags = np.arange(lo, hi + 1)
    center = ac[lags]
    is_peak = (center > ac[lags - 1]) & (center > ac[lags + 1])
    if not is_peak.any():
        return None

    peak_lags = lags[is_peak]
    return int(peak_lags[np.argmax(ac[peak_lags])])


def count_chips(
    rgb: np.ndarray,
    tower: Tower,
    bounds: VerticalBounds,
    smoothing_taps: int = SIGNAL_SMOOTHING_TAPS,
    lag_min: int = LAG_MIN,
    lag_max: int = LAG_MAX,
    padding: int = LEDGE_PADDING,
    default_chip_thickness: int = DEFAULT_CHIP_THICKNESS,
) -> CountEstimate:
    """
    Estimate the number of chips in a tower.

    ``count = round((bottom - top + 2 * padding) / lag)``; the padding removed
    by the boundary detector is restored to approximate the physical stack
    height. Without a periodicity peak the count falls back to
    ``round((bottom - top) / default_chip_thickness)``. Never less than 1.

    Args:
        rgb: (H, W, 3) working image
        tower: Tower whose centre line is analysed
        bounds: Padded vertical bounds from the boundary detector

    Returns:
        CountEstimate
    """
    signal = centerline_signal(rgb, tower.center_x)
    ac = autocorrelation(edge_strength(signal, smoothing_taps))
    lag = find_peak_lag(ac, lag_min, lag_max)

    if lag is None:
        count = max(1, round_half_up(bounds.height / default_chip_thickness))
        logger.debug(
            "Tower at x=%d: no periodicity peak, assuming %d px chips -> %d",
            tower.center_x, default_chip_thickness, count,
        )
        return CountEstimate(count=count)

    active_height = bounds.height + 2 * padding
    count = max(1, round_half_up(active_height / lag))
    logger.debug(
        "Tower at x=%d: chip thickness %d px, active height %d -> %d chips",
        tower.center_x, lag, active_height, count,
    )
    return CountEstimate(count=count, lag=lag)
