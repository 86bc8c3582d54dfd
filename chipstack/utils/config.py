"""
Configuration for the chip-stack counter.

Every threshold the pipeline uses was tuned empirically on photos normalised
to a 600 px working height. They live here as named constants, grouped per
stage in DEFAULT_CONFIG, and can be overridden from a JSON file or a dict.

Usage:
    from chipstack.utils.config import load_config, get_stage_config

    # Defaults only
    config = load_config()

    # Overlay a JSON file and ad-hoc overrides
    config = load_config('/path/to/chipstack.json',
                         overrides={'quality': {'blur_threshold': 60}})
    seg = get_stage_config(config, 'segmentation')

Environment Variables:
    CHIPSTACK_CONFIG: Config file loaded by load_config() when no path is given
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from chipstack.types import ChipDenomination
from chipstack.utils.json_utils import atomic_json_dump
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# PIPELINE CONSTANTS
# =============================================================================

# Working image height all thresholds are calibrated against
TARGET_HEIGHT = 600

# Quality gate
BLUR_THRESHOLD = 80.0             # Laplacian variance below this is "blurry"
LAPLACIAN_SAMPLE_STRIDE = 2

# Segmentation
SEGMENT_BORDER_PX = 10            # Rows skipped at top and bottom
SEGMENT_ROW_STRIDE = 2
SEGMENT_ROW_OFFSET = 2            # Compare each row with the row this far above
EDGE_NOISE_FLOOR = 10.0           # Luma differences at or below this are ignored
PROFILE_SMOOTHING_RADIUS = 10     # Moving average window is 2 * radius + 1
NOISE_FLOOR_MULTIPLIER = 0.8      # Threshold = multiplier * mean energy
MIN_TOWER_WIDTH = 20              # Hills must be wider than this

# White point
WHITE_BAND_START = 0.3
WHITE_BAND_END = 0.7
WHITE_ROW_STRIDE = 10
WHITE_MIN_LIGHTNESS = 60.0
WHITE_MAX_SATURATION = 25.0

# Boundary detection
LEDGE_SCAN_START = 0.1
LEDGE_SCAN_END = 0.9
LEDGE_OFFSET = 5                  # Rows between compared pixels
LEDGE_THRESHOLD = 20.0            # Luma jump that marks a ledge
LEDGE_PADDING = 10                # Inward padding away from the ledge rows
FALLBACK_BAND_TOP = 0.2
FALLBACK_BAND_BOTTOM = 0.8

# Classification
CLASSIFY_SAMPLE_STRIDE = 4
INTERIOR_WIDTH_FRACTION = 0.5

# Periodicity counting
SIGNAL_SMOOTHING_TAPS = 5
LAG_MIN = 8
LAG_MAX = 64
DEFAULT_CHIP_THICKNESS = 15       # Pixels, used when no periodicity is found

# Result sanity
MAX_CHIPS_PER_STACK = 100         # Larger counts are flagged for review
REVIEW_THRESHOLD = 0.85           # Lower winning vote shares are flagged for review
MAX_ASPECT_RATIO = 20.0           # Width / height above this is rejected before resizing

BLUR_WARNING = "image too blurry"


# =============================================================================
# DEFAULT PALETTE
# =============================================================================

DEFAULT_PALETTE: Tuple[ChipDenomination, ...] = (
    ChipDenomination(color='blue', rgb=(29, 78, 216), label='5K', value=5000),
    ChipDenomination(color='yellow', rgb=(161, 98, 7), label='1K', value=1000),
    ChipDenomination(color='green', rgb=(21, 128, 61), label='500', value=500),
    ChipDenomination(color='black', rgb=(24, 24, 27), label='100', value=100),
    ChipDenomination(color='red', rgb=(185, 28, 28), label='20', value=20),
    ChipDenomination(color='white', rgb=(245, 245, 245), label='10', value=10),
)


# =============================================================================
# DEFAULT CONFIGURATION
# =============================================================================

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "quality": {
        "blur_threshold": BLUR_THRESHOLD,
        "sample_stride": LAPLACIAN_SAMPLE_STRIDE,
    },
    "segmentation": {
        "border": SEGMENT_BORDER_PX,
        "row_stride": SEGMENT_ROW_STRIDE,
        "row_offset": SEGMENT_ROW_OFFSET,
        "edge_noise_floor": EDGE_NOISE_FLOOR,
        "smoothing_radius": PROFILE_SMOOTHING_RADIUS,
        "noise_floor_multiplier": NOISE_FLOOR_MULTIPLIER,
        "min_tower_width": MIN_TOWER_WIDTH,
    },
    "white_point": {
        "band_start": WHITE_BAND_START,
        "band_end": WHITE_BAND_END,
        "row_stride": WHITE_ROW_STRIDE,
        "min_lightness": WHITE_MIN_LIGHTNESS,
        "max_saturation": WHITE_MAX_SATURATION,
    },
    "boundaries": {
        "scan_start": LEDGE_SCAN_START,
        "scan_end": LEDGE_SCAN_END,
        "ledge_offset": LEDGE_OFFSET,
        "ledge_threshold": LEDGE_THRESHOLD,
        "padding": LEDGE_PADDING,
        "fallback_top": FALLBACK_BAND_TOP,
        "fallback_bottom": FALLBACK_BAND_BOTTOM,
    },
    "classification": {
        "sample_stride": CLASSIFY_SAMPLE_STRIDE,
        "interior_fraction": INTERIOR_WIDTH_FRACTION,
    },
    "counting": {
        "smoothing_taps": SIGNAL_SMOOTHING_TAPS,
        "lag_min": LAG_MIN,
        "lag_max": LAG_MAX,
        "padding": LEDGE_PADDING,
        "default_chip_thickness": DEFAULT_CHIP_THICKNESS,
    },
    "processing": {
        "target_height": TARGET_HEIGHT,
        "max_workers": 1,
        "max_chips_per_stack": MAX_CHIPS_PER_STACK,
        "review_threshold": REVIEW_THRESHOLD,
        "max_aspect_ratio": MAX_ASPECT_RATIO,
    },
}


# Validation constraints: stage -> key -> rule
_VALIDATION_RULES: Dict[str, Dict[str, Dict[str, Any]]] = {
    "quality": {
        "blur_threshold": {"min": 0.0, "max": 100000.0, "type": float},
        "sample_stride": {"min": 1, "max": 16, "type": int},
    },
    "segmentation": {
        "border": {"min": 0, "max": 200, "type": int},
        "row_stride": {"min": 1, "max": 32, "type": int},
        "row_offset": {"min": 1, "max": 32, "type": int},
        "edge_noise_floor": {"min": 0.0, "max": 255.0, "type": float},
        "smoothing_radius": {"min": 0, "max": 200, "type": int},
        "noise_floor_multiplier": {"min": 0.0, "max": 10.0, "type": float},
        "min_tower_width": {"min": 0, "max": 2000, "type": int},
    },
    "white_point": {
        "band_start": {"min": 0.0, "max": 1.0, "type": float},
        "band_end": {"min": 0.0, "max": 1.0, "type": float},
        "row_stride": {"min": 1, "max": 200, "type": int},
        "min_lightness": {"min": 0.0, "max": 100.0, "type": float},
        "max_saturation": {"min": 0.0, "max": 100.0, "type": float},
    },
    "boundaries": {
        "scan_start": {"min": 0.0, "max": 1.0, "type": float},
        "scan_end": {"min": 0.0, "max": 1.0, "type": float},
        "ledge_offset": {"min": 1, "max": 100, "type": int},
        "ledge_threshold": {"min": 0.0, "max": 255.0, "type": float},
        "padding": {"min": 0, "max": 200, "type": int},
        "fallback_top": {"min": 0.0, "max": 1.0, "type": float},
        "fallback_bottom": {"min": 0.0, "max": 1.0, "type": float},
    },
    "classification": {
        "sample_stride": {"min": 1, "max": 64, "type": int},
        "interior_fraction": {"min": 0.01, "max": 1.0, "type": float},
    },
    "counting": {
        "smoothing_taps": {"min": 1, "max": 51, "type": int},
        "lag_min": {"min": 2, "max": 1000, "type": int},
        "lag_max": {"min": 2, "max": 1000, "type": int},
        "padding": {"min": 0, "max": 200, "type": int},
        "default_chip_thickness": {"min": 1, "max": 500, "type": int},
    },
    "processing": {
        "target_height": {"min": 0, "max": 10000, "type": int},
        "max_workers": {"min": 1, "max": 64, "type": int},
        "max_chips_per_stack": {"min": 1, "max": 100000, "type": int},
        "review_threshold": {"min": 0.0, "max": 1.0, "type": float},
        "max_aspect_ratio": {"min": 1.0, "max": 1000.0, "type": float},
    },
}

# (stage, lower_key, upper_key) pairs that must satisfy lower < upper
_ORDERED_PAIRS: List[Tuple[str, str, str]] = [
    ("white_point", "band_start", "band_end"),
    ("boundaries", "scan_start", "scan_end"),
    ("boundaries", "fallback_top", "fallback_bottom"),
    ("counting", "lag_min", "lag_max"),
]


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def get_stage_config(config: Optional[Dict[str, Any]], stage: str) -> Dict[str, Any]:
    """
    Get one stage's parameters, falling back to defaults for missing keys.

    Args:
        config: Full configuration dict (None means defaults)
        stage: Stage name, e.g. 'segmentation'

    Returns:
        New dict of parameters for the stage

    Raises:
        KeyError: If the stage is unknown
    """
    if stage not in DEFAULT_CONFIG:
        raise KeyError(f"Unknown configuration stage: {stage}")
    params = dict(DEFAULT_CONFIG[stage])
    if config:
        section = config.get(stage) or {}
        # Unknown keys are reported by validate_config and dropped here
        params.update({k: v for k, v in section.items() if k in params})
    return params


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """
    Recursively merge override into base (in-place).

    Nested dicts are merged key by key; other values are deep-copied so base
    never shares mutable references with override.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    validate: bool = True,
) -> Dict[str, Any]:
    """
    Load configuration, merged over DEFAULT_CONFIG.

    Args:
        config_path: JSON file to overlay. If None, CHIPSTACK_CONFIG is used
            when set.
        overrides: Dict overlaid after the file
        validate: Raise ConfigValidationError if the merged config is invalid

    Returns:
        Dict with merged configuration

    Raises:
        ConfigValidationError: If the file cannot be parsed or validation fails
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is None:
        env_path = os.getenv("CHIPSTACK_CONFIG")
        config_path = Path(env_path) if env_path else None

    if config_path is not None:
        config_path = Path(config_path)
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigValidationError(f"Could not load config from {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigValidationError(
                f"Config file {config_path} must contain a JSON object"
            )
        _deep_merge(config, file_config)
        logger.debug("Loaded config overrides from %s", config_path)

    if overrides:
        _deep_merge(config, overrides)

    if validate:
        validate_config(config, raise_on_error=True)

    return config


def save_config(
    config_path: Union[str, Path],
    config: Dict[str, Any],
) -> Path:
    """
    Save configuration as JSON.

    Args:
        config_path: Target file
        config: Configuration dict to save

    Returns:
        Path to saved config file
    """
    return atomic_json_dump(config, config_path)


def _validate_range(
    value: Any,
    key: str,
    min_val: Union[int, float],
    max_val: Union[int, float],
    expected_type: type,
) -> List[str]:
    """
    Validate a single value is within expected range and type.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    # bool is an int subclass but never a valid threshold
    if isinstance(value, bool):
        errors.append(f"{key}: expected {expected_type.__name__}, got bool")
        return errors

    if expected_type == float:
        if not isinstance(value, (int, float)):
            errors.append(f"{key}: expected numeric type, got {type(value).__name__}")
            return errors
    elif not isinstance(value, expected_type):
        errors.append(f"{key}: expected {expected_type.__name__}, got {type(value).__name__}")
        return errors

    if value < min_val or value > max_val:
        errors.append(f"{key}: value {value} out of range [{min_val}, {max_val}]")

    return errors


def validate_config(
    config: Optional[Dict[str, Any]] = None,
    raise_on_error: bool = False,
) -> Dict[str, Union[bool, List[str]]]:
    """
    Validate a configuration dict against expected types and ranges.

    Args:
        config: Configuration dict. If None, validates DEFAULT_CONFIG.
        raise_on_error: Raise ConfigValidationError instead of returning errors

    Returns:
        Dict with validation results:
            - 'valid': bool, True if all validations passed
            - 'errors': List of error message strings
            - 'warnings': List of warning message strings

    Raises:
        ConfigValidationError: If raise_on_error=True and validation fails

    Example:
        >>> result = validate_config({'counting': {'lag_min': 80, 'lag_max': 64}})
        >>> result['valid']
        False
    """
    errors: List[str] = []
    warnings: List[str] = []

    if config is None:
        config = DEFAULT_CONFIG

    for stage, section in config.items():
        if stage not in _VALIDATION_RULES:
            warnings.append(f"{stage}: unknown configuration section, ignored")
            continue
        if not isinstance(section, dict):
            errors.append(f"{stage}: expected object, got {type(section).__name__}")
            continue
        rules = _VALIDATION_RULES[stage]
        for key, value in section.items():
            if key not in rules:
                warnings.append(f"{stage}.{key}: unknown key, ignored")
                continue
            rule = rules[key]
            errors.extend(_validate_range(
                value, f"{stage}.{key}", rule["min"], rule["max"], rule["type"]
            ))

    for stage, low_key, high_key in _ORDERED_PAIRS:
        section = config.get(stage, {})
        if not isinstance(section, dict):
            continue
        params = {**DEFAULT_CONFIG[stage], **section}
        low, high = params[low_key], params[high_key]
        if isinstance(low, (int, float)) and isinstance(high, (int, float)) and low >= high:
            errors.append(
                f"{stage}: {low_key} ({low}) must be less than {high_key} ({high})"
            )

    counting = config.get("counting", {})
    if isinstance(counting, dict):
        taps = counting.get("smoothing_taps")
        if isinstance(taps, int) and not isinstance(taps, bool) and taps % 2 == 0:
            errors.append(f"counting.smoothing_taps: must be odd for a centred window, got {taps}")

    processing = config.get("processing", {})
    if isinstance(processing, dict):
        target = processing.get("target_height", TARGET_HEIGHT)
        if target not in (0, TARGET_HEIGHT):
            warnings.append(
                f"processing.target_height={target}: thresholds are calibrated "
                f"for {TARGET_HEIGHT} px tall images"
            )

    result = {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }

    if raise_on_error and errors:
        raise ConfigValidationError(f"Configuration validation failed: {errors[0]}")

    return result


def load_palette(palette_path: Union[str, Path]) -> List[ChipDenomination]:
    """
    Load a denomination palette from a JSON file.

    The file holds either a list of denominations or an object with a
    'denominations' list; see chipstack.utils.schemas.PaletteFile.

    Args:
        palette_path: Path to the palette JSON file

    Returns:
        Denominations in file order (file order is the tie-break order)
    """
    # Deferred: pydantic is only needed when palettes come from files
    from chipstack.utils.schemas import validate_palette_file

    return validate_palette_file(palette_path).to_denominations()


def get_config_summary(config: Optional[Dict[str, Any]] = None) -> str:
    """One line per stage, for CLI display."""
    if config is None:
        config = DEFAULT_CONFIG
    lines = []
    for stage in DEFAULT_CONFIG:
        params = get_stage_config(config, stage)
        pairs = ", ".join(f"{k}={v}" for k, v in params.items())
        lines.append(f"{stage}: {pairs}")
    return "\n".join(lines)
