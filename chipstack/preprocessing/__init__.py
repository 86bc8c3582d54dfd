"""
Preprocessing stages applied before and around tower analysis.

Includes:
- normalization: Caller buffer to fixed-height RGB working image
- quality: Laplacian-variance sharpness gate
- white_balance: White point estimation and gain correction
"""

from .normalization import (
    buffer_to_rgb,
    resize_to_height,
    prepare_working_image,
)

from .quality import (
    compute_sharpness,
    assess_quality,
)

from .white_balance import (
    estimate_white_point,
    apply_white_point,
)

__all__ = [
    # Normalization
    'buffer_to_rgb',
    'resize_to_height',
    'prepare_working_image',
    # Quality gate
    'compute_sharpness',
    'assess_quality',
    # White balance
    'estimate_white_point',
    'apply_white_point',
]
