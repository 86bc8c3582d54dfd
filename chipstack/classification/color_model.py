"""
RGB to HSL conversion and the perceptual distance used to match pixels
against the chip palette.

Chip colours are separated mostly by hue, so hue dominates the distance for
colourful palette entries. For near-black, near-white and grey entries hue is
noise, and the distance falls back to lightness and saturation only.
"""

from typing import Tuple, Union

import numpy as np

# Palette entries below/above these are treated as achromatic
ACHROMATIC_MAX_SATURATION = 15.0
ACHROMATIC_MIN_LIGHTNESS = 15.0
ACHROMATIC_MAX_LIGHTNESS = 85.0

# Distance weights
HUE_WEIGHT = 2.0
SATURATION_WEIGHT = 0.5
LIGHTNESS_WEIGHT = 0.5
ACHROMATIC_LIGHTNESS_WEIGHT = 1.5
ACHROMATIC_SATURATION_WEIGHT = 0.5

ArrayLike = Union[np.ndarray, float, int]


def rgb_to_hsl_array(rgb: np.ndarray) -> np.ndarray:
    """
    Convert RGB values to HSL.

    Args:
        rgb: Array of shape (..., 3) with channels in 0-255

    Returns:
        Float64 array of shape (..., 3): hue in [0, 360), saturation and
        lightness in [0, 100]. Achromatic pixels get hue 0 and saturation 0.
    """
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    cmax = np.max(rgb, axis=-1)
    cmin = np.min(rgb, axis=-1)
    delta = cmax - cmin
    lightness = (cmax + cmin) / 2.0

    chromatic = delta > 0
    safe_delta = np.where(chromatic, delta, 1.0)

    # Saturation: d / (2 - max - min) above mid lightness, d / (max + min) below
    denom = np.where(lightness > 0.5, 2.0 - cmax - cmin, cmax + cmin)
    saturation = np.where(chromatic, delta / np.where(denom > 0, denom, 1.0), 0.0)

    hue_r = (g - b) / safe_delta + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / safe_delta + 2.0
    hue_b = (r - g) / safe_delta + 4.0
    hue = np.where(cmax == r, hue_r, np.where(cmax == g, hue_g, hue_b))
    hue = np.where(chromatic, hue * 60.0, 0.0)
    hue = np.mod(hue, 360.0)

    return np.stack([hue, saturation * 100.0, lightness * 100.0], axis=-1)


def rgb_to_hsl(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert a single RGB colour to HSL.

    Example:
        >>> rgb_to_hsl(255, 0, 0)
        (0.0, 100.0, 50.0)
    """
    h, s, l = rgb_to_hsl_array(np.array([r, g, b], dtype=np.float64))
    return float(h), float(s), float(l)


def is_achromatic(saturation: ArrayLike, lightness: ArrayLike) -> np.ndarray:
    """True where a colour is grey-like, near-black or near-white."""
    saturation = np.asarray(saturation)
    lightness = np.asarray(lightness)
    return (
        (saturation < ACHROMATIC_MAX_SATURATION)
        | (lightness < ACHROMATIC_MIN_LIGHTNESS)
        | (lightness > ACHROMATIC_MAX_LIGHTNESS)
    )


def hue_difference(h1: ArrayLike, h2: ArrayLike) -> np.ndarray:
    """Circular hue difference in degrees, in [0, 180]."""
    diff = np.abs(np.asarray(h1, dtype=np.float64) - np.asarray(h2, dtype=np.float64))
    return np.minimum(diff, 360.0 - diff)


def perceptual_distance(pixel_hsl, palette_hsl) -> np.ndarray:
    """
    Weighted distance between pixel colours and palette colours.

    The weighting is asymmetric: whether hue counts is decided by the
    palette entry, not the pixel.

    Args:
        pixel_hsl: (..., 3) HSL values of the pixels
        palette_hsl: (..., 3) HSL values of the palette entries, broadcast
            against pixel_hsl

    Returns:
        Distances with the broadcast shape of the inputs minus the last axis
    """
    pixel_hsl = np.asarray(pixel_hsl, dtype=np.float64)
    palette_hsl = np.asarray(palette_hsl, dtype=np.float64)

    dh = hue_difference(pixel_hsl[..., 0], palette_hsl[..., 0])
    ds = np.abs(pixel_hsl[..., 1] - palette_hsl[..., 1])
    dl = np.abs(pixel_hsl[..., 2] - palette_hsl[..., 2])

    achromatic = is_achromatic(palette_hsl[..., 1], palette_hsl[..., 2])
    neutral_distance = ACHROMATIC_LIGHTNESS_WEIGHT * dl + ACHROMATIC_SATURATION_WEIGHT * ds
    chromatic_distance = HUE_WEIGHT * dh + SATURATION_WEIGHT * ds + LIGHTNESS_WEIGHT * dl

    return np.where(achromatic, neutral_distance, chromatic_distance)


def luma(rgb: np.ndarray) -> np.ndarray:
    """Rec. 601 luma of an (..., 3+) array, as float64."""
    rgb = np.asarray(rgb, dtype=np.float64)
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
