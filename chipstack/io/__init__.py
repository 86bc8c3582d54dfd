"""
I/O: image files in, result files out.
"""

from .image_loader import load_image_array, load_pixel_buffer
from .results import result_to_dict, save_result

__all__ = [
    'load_image_array',
    'load_pixel_buffer',
    'result_to_dict',
    'save_result',
]
