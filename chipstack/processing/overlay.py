"""
Debug overlay geometry and rendering.

build_overlay collects the geometry the pipeline produced (column profile,
threshold, one box per tower). render_overlay draws it onto a copy of the
working image so a user can see why a stack was or was not found.
"""

from pathlib import Path
from typing import Sequence, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from chipstack.types import DebugOverlay, OverlayBox
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)

BOX_COLOR = (0, 255, 0)
PROFILE_COLOR = (255, 255, 0)
THRESHOLD_COLOR = (255, 0, 0)
# Fraction of the image height used by the profile plot, anchored at the bottom
PROFILE_PLOT_FRACTION = 0.2


def format_label(count: int, color: str) -> str:
    return f"{count}x {color}"


def build_overlay(
    profile: np.ndarray,
    threshold: float,
    analyses: Sequence,
    image_size: Tuple[int, int],
) -> DebugOverlay:
    """
    Args:
        profile: Smoothed column edge-energy profile
        threshold: Adaptive threshold the segmenter used
        analyses: Per-tower records with ``tower``, ``bounds`` and ``stack``
        image_size: (width, height) of the working image

    Returns:
        DebugOverlay
    """
    boxes = [
        OverlayBox(
            x=a.tower.start_x,
            y=a.bounds.top,
            width=a.tower.width,
            height=a.bounds.height,
            label=format_label(a.stack.count, a.stack.chip.color),
        )
        for a in analyses
    ]
    return DebugOverlay(
        profile=[float(v) for v in np.asarray(profile, dtype=np.float64)],
        threshold=float(threshold),
        boxes=boxes,
        image_size=(int(image_size[0]), int(image_size[1])),
    )


def render_overlay(image: np.ndarray, overlay: DebugOverlay) -> np.ndarray:
    """
    Draw the overlay on a copy of ``image``.

    Args:
        image: (H, W, 3) uint8 working image the overlay refers to
        overlay: Geometry from build_overlay

    Returns:
        New (H, W, 3) uint8 image
    """
    canvas = np.ascontiguousarray(image[..., :3], dtype=np.uint8).copy()
    h, w = canvas.shape[:2]

    profile = np.asarray(overlay.profile, dtype=np.float64)
    if profile.size > 1:
        peak = max(float(profile.max()), overlay.threshold, 1e-6)
        plot_height = max(1, int(h * PROFILE_PLOT_FRACTION))

        def to_y(values):
            return (h - 1 - np.asarray(values) / peak * (plot_height - 1)).astype(np.int32)

        xs = np.arange(profile.size, dtype=np.int32)
        points = np.stack([xs, to_y(profile)], axis=1).reshape(-1, 1, 2)
        cv2.polylines(canvas, [points], False, PROFILE_COLOR, 1)

        ty = int(to_y(overlay.threshold))
        cv2.line(canvas, (0, ty), (w - 1, ty), THRESHOLD_COLOR, 1)

    for box in overlay.boxes:
        top_left = (box.x, box.y)
        bottom_right = (box.x + box.width - 1, box.y + box.height - 1)
        cv2.rectangle(canvas, top_left, bottom_right, BOX_COLOR, 2)
        cv2.putText(
            canvas, box.label,
            (box.x, max(12, box.y - 6)),
            cv2.FONT_HERSHEY_SIMPLEX, 0.4, BOX_COLOR, 1
        )

    return canvas


def save_overlay(path: Union[str, Path], image: np.ndarray) -> Path:
    """Write a rendered overlay to disk. Format follows the file extension."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.asarray(image, dtype=np.uint8)).save(path)
    logger.info(f"Overlay saved to: {path}")
    return path
