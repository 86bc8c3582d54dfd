"""
Single-image chip-stack analysis.

Runs the stages in dependency order:

    quality gate -> segmenter -> white point ->
    per tower (boundaries -> denomination vote -> periodicity count)

Towers share only the read-only working image, palette and white point, so
they can be processed on a thread pool without changing the result.

Usage:
    from chipstack.processing import analyze
    from chipstack.utils.config import DEFAULT_PALETTE

    result = analyze(buffer, DEFAULT_PALETTE)
    for stack in result.stacks:
        print(stack.chip.label, stack.count, stack.value)
    if result.warning:
        print("Retake suggested:", result.warning)
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from chipstack.classification.color_model import luma
from chipstack.classification.denomination import VoteResult, classify_tower, palette_to_hsl
from chipstack.counting.periodicity import CountEstimate, count_chips
from chipstack.detection.boundaries import detect_vertical_bounds
from chipstack.detection.segmenter import segment_towers
from chipstack.preprocessing.normalization import prepare_working_image
from chipstack.preprocessing.quality import assess_quality
from chipstack.preprocessing.white_balance import estimate_white_point
from chipstack.processing.overlay import build_overlay
from chipstack.types import (
    AnalysisResult,
    ChipDenomination,
    DetectedStack,
    InvalidInputError,
    PixelBuffer,
    Tower,
    VerticalBounds,
    WhitePoint,
    validate_palette,
)
from chipstack.utils.config import get_stage_config
from chipstack.utils.logging import ProcessingTimer, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TowerAnalysis:
    """Intermediate per-tower record, kept for the overlay and for debugging."""
    tower: Tower
    bounds: VerticalBounds
    vote: VoteResult
    estimate: CountEstimate
    stack: DetectedStack


def analyze_tower(
    index: int,
    tower: Tower,
    rgb: np.ndarray,
    luma_image: np.ndarray,
    palette: Sequence[ChipDenomination],
    palette_hsl: np.ndarray,
    white_point: WhitePoint,
    config: Optional[Dict[str, Any]] = None,
) -> TowerAnalysis:
    """
    Boundaries, denomination and count for one tower.

    Args:
        index: Tower index, becomes the stack id
        tower: Tower from the segmenter
        rgb: (H, W, 3) working image
        luma_image: Luma of the working image
        palette: Known denominations
        palette_hsl: Palette in HSL, precomputed once per call
        white_point: Shared reference white
        config: Full configuration (None for defaults)

    Returns:
        TowerAnalysis with the finished DetectedStack
    """
    bounds = detect_vertical_bounds(luma_image, tower, **get_stage_config(config, "boundaries"))
    vote = classify_tower(
        rgb, tower, bounds, palette,
        white_point=white_point,
        palette_hsl=palette_hsl,
        **get_stage_config(config, "classification"),
    )
    estimate = count_chips(rgb, tower, bounds, **get_stage_config(config, "counting"))

    processing = get_stage_config(config, "processing")
    chip = palette[vote.index]
    confidence = vote.share
    stack = DetectedStack(
        id=index,
        count=estimate.count,
        chip=chip,
        value=estimate.count * chip.value,
        confidence=confidence,
        needs_review=(
            confidence < processing["review_threshold"]
            or estimate.count > processing["max_chips_per_stack"]
        ),
    )
    return TowerAnalysis(tower=tower, bounds=bounds, vote=vote, estimate=estimate, stack=stack)


def analyze_image(
    rgb: np.ndarray,
    palette: Sequence[ChipDenomination],
    config: Optional[Dict[str, Any]] = None,
    max_workers: Optional[int] = None,
) -> AnalysisResult:
    """
    Analyse an RGB working image that is already at the working height.

    Args:
        rgb: (H, W, 3) or (H, W, 4) uint8 array
        palette: Known denominations, in tie-break order
        config: Full configuration (None for defaults)
        max_workers: Threads for per-tower work; overrides processing.max_workers

    Returns:
        AnalysisResult

    Raises:
        InvalidInputError: If the image is empty or the palette unusable
    """
    validate_palette(palette)
    if rgb.ndim != 3 or rgb.shape[2] < 3 or rgb.shape[0] == 0 or rgb.shape[1] == 0:
        raise InvalidInputError(f"Expected non-empty (H, W, 3) image, got shape {rgb.shape}")

    rgb = rgb[..., :3]
    luma_image = luma(rgb)

    sharpness, warning = assess_quality(rgb, **get_stage_config(config, "quality"))
    towers, profile, threshold = segment_towers(luma_image, **get_stage_config(config, "segmentation"))
    white_point = estimate_white_point(rgb, towers, **get_stage_config(config, "white_point"))
    palette_hsl = palette_to_hsl(palette)

    def _run(item):
        index, tower = item
        return analyze_tower(
            index, tower, rgb, luma_image, palette, palette_hsl, white_point, config
        )

    if max_workers is None:
        max_workers = get_stage_config(config, "processing")["max_workers"]

    if max_workers > 1 and len(towers) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            # map preserves tower order
            analyses: List[TowerAnalysis] = list(executor.map(_run, enumerate(towers)))
    else:
        analyses = [_run(item) for item in enumerate(towers)]

    stacks = [a.stack for a in analyses]
    overlay = build_overlay(
        profile, threshold, analyses, image_size=(rgb.shape[1], rgb.shape[0])
    )

    if not stacks:
        logger.info("No chip stacks detected")
    for stack in stacks:
        logger.info(
            "Stack %d: %d x %s (%s) = %s, confidence %.2f%s",
            stack.id, stack.count, stack.chip.color, stack.chip.label, stack.value,
            stack.confidence,
            " [review]" if stack.needs_review else "",
        )

    return AnalysisResult(
        stacks=stacks,
        warning=warning,
        debug_overlay=overlay,
        sharpness=sharpness,
        white_point=white_point,
    )


def analyze(
    buffer: PixelBuffer,
    palette: Sequence[ChipDenomination],
    config: Optional[Dict[str, Any]] = None,
    max_workers: Optional[int] = None,
) -> AnalysisResult:
    """
    Count chip stacks in a decoded RGBA photo.

    The buffer is rescaled to the configured working height (600 px by
    default) before analysis; overlay coordinates refer to that working
    image.

    Args:
        buffer: Decoded RGBA pixels, borrowed for the duration of the call
        palette: Known denominations, in tie-break order
        config: Full configuration (None for defaults)
        max_workers: Threads for per-tower work

    Returns:
        AnalysisResult; an empty stack list when no towers are found

    Raises:
        InvalidInputError: Empty palette, zero-sized buffer, a buffer whose
            length does not match its dimensions, or one too wide to rescale
    """
    buffer.validate()
    validate_palette(palette)

    processing = get_stage_config(config, "processing")
    with ProcessingTimer(logger, f"analysis of {buffer.width}x{buffer.height} image"):
        rgb = prepare_working_image(
            buffer, processing["target_height"], processing["max_aspect_ratio"]
        )
        return analyze_image(rgb, palette, config=config, max_workers=max_workers)
