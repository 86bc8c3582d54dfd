"""
Writing analysis results to disk.
"""

from pathlib import Path
from typing import Optional, Union

from chipstack.types import AnalysisResult
from chipstack.utils.json_utils import atomic_json_dump
from chipstack.utils.logging import get_logger

logger = get_logger(__name__)


def result_to_dict(
    result: AnalysisResult,
    source: Optional[Union[str, Path]] = None,
    include_overlay: bool = True,
) -> dict:
    """
    Serializable view of an AnalysisResult.

    Args:
        result: Analysis output
        source: Image the result was computed from, recorded as a string
        include_overlay: Keep the debug overlay geometry (profile can be long)
    """
    data = result.to_dict()
    if not include_overlay:
        data.pop('debug_overlay', None)
    if source is not None:
        data['source'] = str(source)
    return data


def save_result(
    result: AnalysisResult,
    path: Union[str, Path],
    source: Optional[Union[str, Path]] = None,
    include_overlay: bool = True,
) -> Path:
    """
    Atomically write a result as JSON.

    The output validates against chipstack.utils.schemas.ResultFile.

    Returns:
        Path of the written file
    """
    path = atomic_json_dump(
        result_to_dict(result, source=source, include_overlay=include_overlay), path
    )
    logger.info(f"Saved {len(result.stacks)} stacks to {path}")
    return path
