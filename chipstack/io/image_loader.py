"""
Image file loading into PixelBuffer.

Any format Pillow can decode is accepted; palette, greyscale and alpha
images are all converted to RGBA so the pipeline sees one layout.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from chipstack.preprocessing.normalization import resize_to_height
from chipstack.types import InvalidInputError, PixelBuffer
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def load_image_array(path: Union[str, Path]) -> np.ndarray:
    """
    Decode an image file to an (H, W, 4) uint8 RGBA array.

    Raises:
        InvalidInputError: If the file is missing or not a decodable image
    """
    path = Path(path)
    try:
        with Image.open(path) as img:
            rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
        raise InvalidInputError(f"Could not read image {path}: {e}") from e

    logger.debug("Loaded %s: %dx%d", path.name, rgba.shape[1], rgba.shape[0])
    return rgba


def load_pixel_buffer(
    path: Union[str, Path],
    target_height: Optional[int] = None,
) -> PixelBuffer:
    """
    Load an image file as a PixelBuffer.

    Args:
        path: Image file path
        target_height: Rescale to this height first (None keeps the original
            size; analysis rescales to the working height anyway)

    Returns:
        PixelBuffer in RGBA layout
    """
    rgba = load_image_array(path)
    if target_height:
        rgba = resize_to_height(rgba, target_height)
    return PixelBuffer.from_array(rgba)
