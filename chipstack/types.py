"""
Data model shared by every stage of the chip-stack counter.

All records are frozen dataclasses: the pipeline borrows the caller's
buffer and palette for one call and produces fresh results each time.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np


class InvalidInputError(ValueError):
    """Raised when the caller violates an analysis precondition.

    Distinct from an empty result: a photo with no chips is a valid
    outcome, a zero-sized buffer or an empty palette is a programming error.
    """
    pass


@dataclass(frozen=True)
class PixelBuffer:
    """
    Decoded image in RGBA interleaved layout (4 bytes/pixel), row-major,
    top-to-bottom.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        data: Raw RGBA bytes, length width * height * 4
    """
    width: int
    height: int
    data: bytes

    def validate(self) -> None:
        """Raise InvalidInputError if dimensions and byte length disagree."""
        if self.width <= 0 or self.height <= 0:
            raise InvalidInputError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise InvalidInputError(
                f"Buffer length {len(self.data)} does not match "
                f"{self.width}x{self.height}x4 = {expected}"
            )

    def to_array(self) -> np.ndarray:
        """Return a read-only (H, W, 4) uint8 view of the buffer."""
        self.validate()
        arr = np.frombuffer(self.data, dtype=np.uint8)
        return arr.reshape(self.height, self.width, 4)

    @classmethod
    def from_array(cls, image: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from an (H, W, 3) RGB or (H, W, 4) RGBA array.

        Args:
            image: uint8-compatible array; alpha is set to 255 for RGB input

        Returns:
            PixelBuffer owning a copy of the pixel data
        """
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise InvalidInputError(
                f"Expected (H, W, 3) or (H, W, 4) array, got shape {image.shape}"
            )
        h, w = image.shape[:2]
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        rgba[..., :3] = np.clip(image[..., :3], 0, 255)
        rgba[..., 3] = image[..., 3] if image.shape[2] == 4 else 255
        return cls(width=w, height=h, data=rgba.tobytes())


@dataclass(frozen=True)
class ChipDenomination:
    """
    A chip type from the caller-supplied palette.

    Attributes:
        color: Colour token, e.g. 'red'
        rgb: Canonical (R, G, B), each 0-255
        label: Display label, e.g. '5K'
        value: Monetary value of a single chip
    """
    color: str
    rgb: Tuple[int, int, int]
    label: str
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'color': self.color,
            'rgb': list(self.rgb),
            'label': self.label,
            'value': self.value,
        }


@dataclass(frozen=True)
class Tower:
    """Half-open column range [start_x, end_x) holding one physical stack."""
    start_x: int
    end_x: int

    @property
    def width(self) -> int:
        return self.end_x - self.start_x

    @property
    def center_x(self) -> int:
        return (self.start_x + self.end_x) // 2


@dataclass(frozen=True)
class WhitePoint:
    """Reference white used for per-channel gain correction."""
    r: float = 255.0
    g: float = 255.0
    b: float = 255.0

    def as_array(self) -> np.ndarray:
        return np.array([self.r, self.g, self.b], dtype=np.float64)

    @property
    def is_neutral(self) -> bool:
        return self.r == 255 and self.g == 255 and self.b == 255


@dataclass(frozen=True)
class VerticalBounds:
    """
    Padded interior rows of a tower.

    Attributes:
        top: First interior row (inclusive)
        bottom: Last interior row (exclusive)
        fallback: True when ledge detection failed and the default band was used
    """
    top: int
    bottom: int
    fallback: bool = False

    @property
    def height(self) -> int:
        return self.bottom - self.top


@dataclass(frozen=True)
class DetectedStack:
    """
    One tower's result.

    Attributes:
        id: Tower index, left to right
        count: Estimated number of chips, always >= 1
        chip: Winning denomination
        value: count * chip.value
        confidence: Share of interior samples that voted for ``chip`` (0-1)
        needs_review: Denomination is uncertain or the count implausibly
            large; the user should check the stack
    """
    id: int
    count: int
    chip: ChipDenomination
    value: float
    confidence: float = 1.0
    needs_review: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'count': self.count,
            'chip': self.chip.to_dict(),
            'value': self.value,
            'confidence': self.confidence,
            'needs_review': self.needs_review,
        }


@dataclass(frozen=True)
class OverlayBox:
    """Tower bounding box in working-image coordinates with its caption."""
    x: int
    y: int
    width: int
    height: int
    label: str


@dataclass(frozen=True)
class DebugOverlay:
    """
    Visualisation geometry. Carries no semantic weight.

    Attributes:
        profile: Smoothed column edge-energy profile
        threshold: Adaptive threshold applied to the profile
        boxes: One box per detected stack
        image_size: (width, height) of the working image the geometry refers to
    """
    profile: List[float] = field(default_factory=list)
    threshold: float = 0.0
    boxes: List[OverlayBox] = field(default_factory=list)
    image_size: Tuple[int, int] = (0, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'profile': list(self.profile),
            'threshold': self.threshold,
            'boxes': [
                {'x': b.x, 'y': b.y, 'width': b.width, 'height': b.height, 'label': b.label}
                for b in self.boxes
            ],
            'image_size': list(self.image_size),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Output of one analysis call.

    Attributes:
        stacks: Detected stacks in left-to-right tower order
        warning: Advisory text (e.g. blur), None when the photo looks fine
        debug_overlay: Geometry for caller-side visualisation
        sharpness: Laplacian variance of the working image
        white_point: Reference white used for classification
    """
    stacks: List[DetectedStack]
    warning: Optional[str] = None
    debug_overlay: DebugOverlay = field(default_factory=DebugOverlay)
    sharpness: float = 0.0
    white_point: WhitePoint = field(default_factory=WhitePoint)

    @property
    def total_value(self) -> float:
        return sum(stack.value for stack in self.stacks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'stacks': [s.to_dict() for s in self.stacks],
            'total_value': self.total_value,
            'warning': self.warning,
            'sharpness': self.sharpness,
            'white_point': [self.white_point.r, self.white_point.g, self.white_point.b],
            'debug_overlay': self.debug_overlay.to_dict(),
        }


def validate_palette(palette: Sequence[ChipDenomination]) -> None:
    """
    Check the palette is usable for classification.

    Raises:
        InvalidInputError: If the palette is empty or an entry has a malformed RGB
    """
    if not palette:
        raise InvalidInputError("Palette must contain at least one denomination")
    for i, chip in enumerate(palette):
        if len(chip.rgb) != 3 or any(not 0 <= c <= 255 for c in chip.rgb):
            raise InvalidInputError(
                f"Palette entry {i} ({chip.color!r}) has invalid rgb {chip.rgb}"
            )
