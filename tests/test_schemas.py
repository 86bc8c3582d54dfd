"""
Tests for chipstack/utils/schemas.py and palette loading.

Run with: pytest tests/test_schemas.py -v
"""

import json

import pytest
from pydantic import ValidationError

from chipstack.types import ChipDenomination, InvalidInputError
from chipstack.utils.config import load_palette
from chipstack.utils.schemas import (
    PaletteFile,
    ResultFile,
    validate_palette_file,
    validate_result_file,
)


def _write_json(path, data):
    with open(path, 'w') as f:
        json.dump(data, f)
    return path


PALETTE_ENTRIES = [
    {"color": "purple", "rgb": [90, 30, 140], "label": "500", "value": 500},
    {"color": "orange", "rgb": [230, 120, 20], "label": "1K", "value": 1000},
]


class TestPaletteFile:

    def test_list_form(self, temp_dir):
        path = _write_json(temp_dir / "p.json", PALETTE_ENTRIES)
        palette = validate_palette_file(path).to_denominations()
        assert palette == [
            ChipDenomination('purple', (90, 30, 140), '500', 500),
            ChipDenomination('orange', (230, 120, 20), '1K', 1000),
        ]

    def test_object_form(self, temp_dir):
        path = _write_json(temp_dir / "p.json", {"name": "home", "denominations": PALETTE_ENTRIES})
        parsed = validate_palette_file(path)
        assert parsed.name == "home"
        assert len(parsed.denominations) == 2

    def test_load_palette_keeps_file_order(self, temp_dir):
        path = _write_json(temp_dir / "p.json", list(reversed(PALETTE_ENTRIES)))
        assert [c.color for c in load_palette(path)] == ['orange', 'purple']

    def test_rgb_is_tuple(self, temp_dir):
        path = _write_json(temp_dir / "p.json", PALETTE_ENTRIES)
        assert isinstance(load_palette(path)[0].rgb, tuple)

    @pytest.mark.parametrize("entries", [
        [],
        [{"color": "x", "rgb": [0, 0, 300], "label": "x", "value": 1}],
        [{"color": "x", "rgb": [0, 0], "label": "x", "value": 1}],
        [{"color": "x", "rgb": [0, 0, 0], "label": "x", "value": -5}],
        [{"color": "", "rgb": [0, 0, 0], "label": "x", "value": 1}],
        PALETTE_ENTRIES + [PALETTE_ENTRIES[0]],
    ])
    def test_invalid_palettes(self, temp_dir, entries):
        path = _write_json(temp_dir / "p.json", entries)
        with pytest.raises(InvalidInputError):
            validate_palette_file(path)

    def test_unreadable_file(self, temp_dir):
        path = temp_dir / "p.json"
        path.write_text("{oops")
        with pytest.raises(InvalidInputError):
            validate_palette_file(path)
        with pytest.raises(InvalidInputError):
            validate_palette_file(temp_dir / "missing.json")

    def test_model_validate_directly(self):
        parsed = PaletteFile.model_validate({"denominations": PALETTE_ENTRIES})
        assert parsed.denominations[1].to_denomination().value == 1000


class TestResultFile:

    def _result(self, total):
        return {
            "stacks": [{
                "id": 0,
                "count": 3,
                "chip": PALETTE_ENTRIES[0],
                "value": 1500,
                "needs_review": False,
            }],
            "total_value": total,
            "warning": None,
            "sharpness": 120.5,
            "white_point": [255, 255, 255],
        }

    def test_valid(self, temp_dir):
        path = _write_json(temp_dir / "r.json", self._result(1500))
        parsed = validate_result_file(path)
        assert parsed.stacks[0].count == 3

    def test_total_mismatch(self, temp_dir):
        path = _write_json(temp_dir / "r.json", self._result(10))
        with pytest.raises(InvalidInputError):
            validate_result_file(path)

    def test_zero_count_rejected(self):
        data = self._result(0)
        data["stacks"][0]["count"] = 0
        data["stacks"][0]["value"] = 0
        with pytest.raises(ValidationError):
            ResultFile.model_validate(data)

    def test_confidence_optional(self, temp_dir):
        path = _write_json(temp_dir / "r.json", self._result(1500))
        assert validate_result_file(path).stacks[0].confidence is None

    def test_confidence_out_of_range_rejected(self):
        data = self._result(1500)
        data["stacks"][0]["confidence"] = 1.5
        with pytest.raises(ValidationError):
            ResultFile.model_validate(data)
