"""
Colour model and denomination classification.

color_model must be imported before denomination (denomination pulls in the
white-balance stage, which depends on color_model).
"""

from .color_model import (
    rgb_to_hsl,
    rgb_to_hsl_array,
    perceptual_distance,
    hue_difference,
    is_achromatic,
    luma,
)

from .denomination import (
    VoteResult,
    palette_to_hsl,
    interior_region,
    count_votes,
    classify_tower,
)

__all__ = [
    # Colour model
    'rgb_to_hsl',
    'rgb_to_hsl_array',
    'perceptual_distance',
    'hue_difference',
    'is_achromatic',
    'luma',
    # Classification
    'VoteResult',
    'palette_to_hsl',
    'interior_region',
    'count_votes',
    'classify_tower',
]
