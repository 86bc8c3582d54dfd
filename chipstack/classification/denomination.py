"""
Denomination voting over a tower's interior.

Each sampled pixel votes for its nearest palette entry under the perceptual
distance; the entry with most votes wins. Votes are indexed by palette
position so ties always resolve to the earlier entry.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from chipstack.classification.color_model import perceptual_distance, rgb_to_hsl_array
from chipstack.preprocessing.white_balance import apply_white_point
from chipstack.types import ChipDenomination, InvalidInputError, Tower, VerticalBounds, WhitePoint
from chipstack.utils.config import CLASSIFY_SAMPLE_STRIDE, INTERIOR_WIDTH_FRACTION
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class VoteResult:
    """
    Outcome of a classification vote.

    Attributes:
        index: Palette index of the winner
        votes: Vote count per palette index
    """
    index: int
    votes: np.ndarray

    @property
    def total(self) -> int:
        return int(self.votes.sum())

    @property
    def share(self) -> float:
        """Fraction of votes held by the winner (0.0 when nothing was sampled)."""
        total = self.total
        return float(self.votes[self.index]) / total if total else 0.0


def palette_to_hsl(palette: Sequence[ChipDenomination]) -> np.ndarray:
    """(P, 3) HSL array of the palette's canonical colours."""
    return rgb_to_hsl_array(np.array([chip.rgb for chip in palette], dtype=np.float64))


def interior_region(
    tower: Tower,
    bounds: VerticalBounds,
    interior_fraction: float = INTERIOR_WIDTH_FRACTION,
) -> Tuple[int, int, int, int]:
    """
    Column and row range of the tower interior.

    Returns:
        (x0, x1, y0, y1) half-open ranges; the middle ``interior_fraction`` of
        the width, at least one column wide
    """
    margin = tower.width * (1.0 - interior_fraction) / 2.0
    x0 = int(tower.start_x + margin)
    x1 = max(int(tower.end_x - margin), x0 + 1)
    return x0, x1, bounds.top, bounds.bottom


def count_votes(
    pixels_rgb: np.ndarray,
    palette_hsl: np.ndarray,
    white_point: WhitePoint,
) -> np.ndarray:
    """
    Nearest-palette votes for a set of pixels.

    Args:
        pixels_rgb: (N, 3) raw RGB samples
        palette_hsl: (P, 3) palette HSL values
        white_point: Reference white for gain correction

    Returns:
        (P,) int64 vote counts
    """
    n_palette = palette_hsl.shape[0]
    if pixels_rgb.size == 0:
        return np.zeros(n_palette, dtype=np.int64)

    corrected = apply_white_point(pixels_rgb.reshape(-1, 3), white_point)
    pixel_hsl = rgb_to_hsl_array(corrected)

    # (N, P): argmin keeps the first palette entry on equal distance
    distances = perceptual_distance(pixel_hsl[:, None, :], palette_hsl[None, :, :])
    nearest = np.argmin(distances, axis=1)
    return np.bincount(nearest, minlength=n_palette).astype(np.int64)


def classify_tower(
    rgb: np.ndarray,
    tower: Tower,
    bounds: VerticalBounds,
    palette: Sequence[ChipDenomination],
    white_point: WhitePoint = WhitePoint(),
    sample_stride: int = CLASSIFY_SAMPLE_STRIDE,
    interior_fraction: float = INTERIOR_WIDTH_FRACTION,
    palette_hsl: Optional[np.ndarray] = None,
) -> VoteResult:
    """
    Pick the dominant denomination inside a tower.

    Args:
        rgb: (H, W, 3) working image
        tower: Tower to classify
        bounds: Padded vertical bounds of the stack
        palette: Known denominations, in tie-break order
        white_point: Reference white from the estimator
        sample_stride: Sampling grid step in both axes
        interior_fraction: Fraction of the tower width sampled, centred
        palette_hsl: Precomputed palette HSL (computed if omitted)

    Returns:
        VoteResult; with no samples the first palette entry wins by default

    Raises:
        InvalidInputError: If the palette is empty
    """
    if not palette:
        raise InvalidInputError("Cannot classify against an empty palette")
    if palette_hsl is None:
        palette_hsl = palette_to_hsl(palette)

    x0, x1, y0, y1 = interior_region(tower, bounds, interior_fraction)
    samples = rgb[y0:y1:sample_stride, x0:x1:sample_stride, :3]

    votes = count_votes(samples.reshape(-1, 3), palette_hsl, white_point)
    # argmax keeps the earliest palette entry on tied counts
    winner = int(np.argmax(votes))

    logger.debug(
        "Tower %d-%d: %d samples, winner %s (%d votes)",
        tower.start_x, tower.end_x, int(votes.sum()), palette[winner].color, int(votes[winner]),
    )
    return VoteResult(index=winner, votes=votes)
