"""
Chip-stack counter: estimate the number and value of casino chips in a
side-on photograph of one or more stacks.

Usage:
    from chipstack.io import load_pixel_buffer
    from chipstack.processing import analyze
    from chipstack.utils import DEFAULT_PALETTE, get_logger, setup_logging

    result = analyze(load_pixel_buffer("table.jpg"), DEFAULT_PALETTE)
    print(result.total_value)
"""

# Version
__version__ = "0.1.0"

# Individual modules should be imported explicitly:
#   from chipstack.processing import analyze
#   from chipstack.utils.logging import get_logger

__all__ = [
    "types",
    "preprocessing",
    "detection",
    "classification",
    "counting",
    "processing",
    "io",
    "utils",
    "cli",
]
