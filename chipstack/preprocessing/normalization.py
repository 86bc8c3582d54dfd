"""
Conversion of caller buffers into the working image.

All thresholds downstream assume a fixed working height, so the image is
rescaled (aspect ratio preserved) before any analysis stage runs.
"""

import cv2
import numpy as np

from chipstack.types import InvalidInputError, PixelBuffer
from chipstack.utils.config import MAX_ASPECT_RATIO, TARGET_HEIGHT
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def buffer_to_rgb(buffer: PixelBuffer) -> np.ndarray:
    """
    Drop the alpha channel of a PixelBuffer.

    Returns:
        (H, W, 3) uint8 array (a copy; the caller's bytes are never touched)
    """
    return np.ascontiguousarray(buffer.to_array()[..., :3])


def resize_to_height(
    image: np.ndarray,
    target_height: int = TARGET_HEIGHT,
    max_aspect_ratio: float = MAX_ASPECT_RATIO,
) -> np.ndarray:
    """
    Rescale an image to ``target_height`` rows, preserving aspect ratio.

    Uses INTER_AREA when shrinking and INTER_LINEAR when enlarging. Images
    already at the target height are returned unchanged.

    Args:
        image: (H, W) or (H, W, C) uint8 array
        target_height: Desired height in pixels; 0 disables resizing
        max_aspect_ratio: Largest width / height accepted for resizing

    Returns:
        Resized array (width is at least 1)

    Raises:
        InvalidInputError: If the image is wider than max_aspect_ratio allows
    """
    h, w = image.shape[:2]
    if not target_height or h == target_height:
        return image

    if w > h * max_aspect_ratio:
        raise InvalidInputError(
            f"Image {w}x{h} is too wide to rescale: aspect ratio {w / h:.1f} "
            f"exceeds {max_aspect_ratio:g}"
        )

    scale = target_height / h
    new_w = max(1, int(round(w * scale)))
    interpolation = cv2.INTER_AREA if scale < 1 else cv2.INTER_LINEAR

    logger.debug("Resizing %dx%d -> %dx%d", w, h, new_w, target_height)
    return cv2.resize(image, (new_w, target_height), interpolation=interpolation)


def prepare_working_image(
    buffer: PixelBuffer,
    target_height: int = TARGET_HEIGHT,
    max_aspect_ratio: float = MAX_ASPECT_RATIO,
) -> np.ndarray:
    """Validated buffer -> (H, W, 3) uint8 RGB working image at the working height."""
    return resize_to_height(buffer_to_rgb(buffer), target_height, max_aspect_ratio)
