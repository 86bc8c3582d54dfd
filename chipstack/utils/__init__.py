"""
Utility modules for the chip-stack counter.

Provides:
- Configuration management (named thresholds, palette loading)
- Logging utilities
- JSON helpers
- Schema validation (requires pydantic)
"""

from .config import (
    DEFAULT_CONFIG,
    DEFAULT_PALETTE,
    ConfigValidationError,
    load_config,
    save_config,
    validate_config,
    get_stage_config,
    get_config_summary,
    load_palette,
)

from .logging import (
    get_logger,
    setup_logging,
    log_parameters,
    ProcessingTimer,
)

from .json_utils import (
    sanitize_for_json,
    atomic_json_dump,
)

# Schemas require pydantic - import separately if needed
# from chipstack.utils.schemas import PaletteFile, ResultFile

__all__ = [
    # Config
    'DEFAULT_CONFIG',
    'DEFAULT_PALETTE',
    'ConfigValidationError',
    'load_config',
    'save_config',
    'validate_config',
    'get_stage_config',
    'get_config_summary',
    'load_palette',
    # Logging
    'get_logger',
    'setup_logging',
    'log_parameters',
    'ProcessingTimer',
    # JSON
    'sanitize_for_json',
    'atomic_json_dump',
]
