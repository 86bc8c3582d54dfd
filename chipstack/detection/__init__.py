"""
Tower detection: where the stacks are, horizontally and vertically.
"""

from .segmenter import (
    compute_edge_profile,
    smooth_profile,
    adaptive_threshold,
    find_towers,
    segment_towers,
)

from .boundaries import (
    find_top_ledge,
    find_bottom_ledge,
    detect_vertical_bounds,
)

__all__ = [
    'compute_edge_profile',
    'smooth_profile',
    'adaptive_threshold',
    'find_towers',
    'segment_towers',
    'find_top_ledge',
    'find_bottom_ledge',
    'detect_vertical_bounds',
]
