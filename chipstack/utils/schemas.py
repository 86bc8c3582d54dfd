"""
Schema validation for palette and result JSON files.

Uses Pydantic for validation with clear error messages.

Usage:
    from chipstack.utils.schemas import validate_palette_file

    palette = validate_palette_file("/path/to/palette.json").to_denominations()
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from chipstack.types import ChipDenomination, InvalidInputError


class DenominationSchema(BaseModel):
    """One palette entry as stored in JSON."""
    color: str = Field(min_length=1)
    rgb: Tuple[int, int, int]
    label: str
    value: float = Field(ge=0)

    @field_validator("rgb")
    @classmethod
    def rgb_in_range(cls, v: Tuple[int, int, int]) -> Tuple[int, int, int]:
        for channel in v:
            if not 0 <= channel <= 255:
                raise ValueError(f"rgb channels must be 0-255, got {v}")
        return v

    def to_denomination(self) -> ChipDenomination:
        return ChipDenomination(
            color=self.color, rgb=tuple(self.rgb), label=self.label, value=self.value
        )


class PaletteFile(BaseModel):
    """Palette file: an ordered, non-empty list of denominations."""
    name: Optional[str] = None
    denominations: List[DenominationSchema] = Field(min_length=1)

    @model_validator(mode="after")
    def unique_colors(self) -> "PaletteFile":
        colors = [d.color.lower() for d in self.denominations]
        duplicates = sorted({c for c in colors if colors.count(c) > 1})
        if duplicates:
            raise ValueError(f"Duplicate palette colors: {duplicates}")
        return self

    def to_denominations(self) -> List[ChipDenomination]:
        return [d.to_denomination() for d in self.denominations]


class StackRecord(BaseModel):
    """A detected stack as written by chipstack.io.results."""
    id: int = Field(ge=0)
    count: int = Field(ge=1)
    chip: DenominationSchema
    value: float
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    needs_review: bool = False


class ResultFile(BaseModel):
    """Analysis result JSON written by the CLI."""
    stacks: List[StackRecord]
    total_value: float
    warning: Optional[str] = None
    sharpness: float
    white_point: Tuple[float, float, float]
    source: Optional[str] = None

    @model_validator(mode="after")
    def total_matches(self) -> "ResultFile":
        expected = sum(s.value for s in self.stacks)
        if abs(expected - self.total_value) > 1e-6:
            raise ValueError(
                f"total_value {self.total_value} does not match sum of stacks {expected}"
            )
        return self


def _load_json(path: Union[str, Path]):
    path = Path(path)
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise InvalidInputError(f"Could not read {path}: {e}") from e


def validate_palette_file(path: Union[str, Path]) -> PaletteFile:
    """
    Load and validate a palette file.

    Accepts either ``[{...}, ...]`` or ``{"name": ..., "denominations": [...]}``.

    Raises:
        InvalidInputError: If the file is unreadable or fails validation
    """
    data = _load_json(path)
    if isinstance(data, list):
        data = {"denominations": data}
    try:
        return PaletteFile.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid palette file {path}: {e}") from e


def validate_result_file(path: Union[str, Path]) -> ResultFile:
    """
    Load and validate a result file written by save_result().

    Raises:
        InvalidInputError: If the file is unreadable or fails validation
    """
    data = _load_json(path)
    try:
        return ResultFile.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid result file {path}: {e}") from e
