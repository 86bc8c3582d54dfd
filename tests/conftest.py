"""
Pytest fixtures for chipstack tests.

Provides synthetic chip-stack photos with known geometry, palettes and
temporary directories.
"""

import sys
import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chipstack.types import ChipDenomination, PixelBuffer
from chipstack.utils.config import DEFAULT_PALETTE


FELT = (10, 50, 25)
RED_CHIP = (200, 30, 30)
RED_SEAM = (100, 15, 15)
WHITE_CHIP = (240, 240, 240)
WHITE_SEAM = (120, 120, 120)


def draw_stack(image, x0, x1, top, n_chips, period, chip_rgb, seam_rgb, seam_rows=2):
    """
    Paint a stack of ``n_chips`` chips into ``image`` (in place).

    Each chip is ``period`` rows tall; its last ``seam_rows`` rows are the
    darker seam between two chips.

    Returns:
        Row one past the bottom of the stack
    """
    for k in range(n_chips):
        y = top + k * period
        image[y:y + period, x0:x1] = chip_rgb
        image[y + period - seam_rows:y + period, x0:x1] = seam_rgb
    return top + n_chips * period


def make_chip_table(height=600, width=400):
    """
    Two stacks on green felt.

    - red:   columns 60-140, rows 200-380, 9 chips of 20 px
    - white: columns 240-320, rows 200-350, 6 chips of 25 px
    """
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:] = FELT
    draw_stack(image, 60, 140, 200, 9, 20, RED_CHIP, RED_SEAM)
    draw_stack(image, 240, 320, 200, 6, 25, WHITE_CHIP, WHITE_SEAM)
    return image


@pytest.fixture
def reference_scene_image():
    """
    600x400 photo: red stack (period 20, 180 px tall) left of a white stack
    (period 15, 150 px tall).

    Returns:
        np.ndarray: (600, 400, 3) uint8 array
    """
    image = np.empty((600, 400, 3), dtype=np.uint8)
    image[:] = FELT
    draw_stack(image, 60, 140, 200, 9, 20, RED_CHIP, RED_SEAM)
    draw_stack(image, 240, 320, 200, 10, 15, WHITE_CHIP, WHITE_SEAM)
    return image


@pytest.fixture
def reference_palette():
    """Palette matching the reference scene colours exactly."""
    return [
        ChipDenomination(color='red', rgb=RED_CHIP, label='R', value=100),
        ChipDenomination(color='white', rgb=WHITE_CHIP, label='W', value=25),
    ]


@pytest.fixture
def chip_table_image():
    """
    600x400 RGB photo with a red stack (9 chips) left of a white stack (6 chips).

    Returns:
        np.ndarray: (600, 400, 3) uint8 array
    """
    return make_chip_table()


@pytest.fixture
def chip_table_buffer(chip_table_image):
    """The chip table as an RGBA PixelBuffer."""
    return PixelBuffer.from_array(chip_table_image)


@pytest.fixture
def mixed_tower_image():
    """
    One tower at columns 60-140: 5 red chips (rows 200-300) on top of 4 white
    chips (rows 300-380), all 20 px.

    Returns:
        np.ndarray: (600, 400, 3) uint8 array
    """
    image = np.empty((600, 400, 3), dtype=np.uint8)
    image[:] = FELT
    bottom = draw_stack(image, 60, 140, 200, 5, 20, RED_CHIP, RED_SEAM)
    draw_stack(image, 60, 140, bottom, 4, 20, WHITE_CHIP, WHITE_SEAM)
    return image


@pytest.fixture
def empty_table_image():
    """
    Felt with nothing on it.

    Returns:
        np.ndarray: (600, 400, 3) uint8 array of one colour
    """
    image = np.empty((600, 400, 3), dtype=np.uint8)
    image[:] = FELT
    return image


@pytest.fixture
def single_red_column():
    """
    30 px wide, 400 px tall strip: 10 red chips of 20 px between rows 100 and 300.

    Returns:
        np.ndarray: (400, 30, 3) uint8 array
    """
    image = np.full((400, 30, 3), 30, dtype=np.uint8)
    draw_stack(image, 0, 30, 100, 10, 20, RED_CHIP, RED_SEAM)
    return image


@pytest.fixture
def striped_bars_luma():
    """
    Luma image with two horizontally striped bars on a flat background.

    Bars cover columns 50-110 and 180-240; stripes alternate every 4 rows.

    Returns:
        np.ndarray: (200, 300) float64 array
    """
    luma = np.zeros((200, 300), dtype=np.float64)
    stripes = ((np.arange(200) // 4) % 2 == 0) * 100.0
    luma[:, 50:110] = stripes[:, None]
    luma[:, 180:240] = stripes[:, None]
    return luma


@pytest.fixture
def default_palette():
    """The built-in six-chip palette as a list."""
    return list(DEFAULT_PALETTE)


@pytest.fixture
def red_white_palette():
    """Two-entry palette: red then white."""
    return [
        ChipDenomination(color='red', rgb=(185, 28, 28), label='20', value=20),
        ChipDenomination(color='white', rgb=(245, 245, 245), label='10', value=10),
    ]


@pytest.fixture
def temp_dir():
    """
    Temporary directory that is cleaned up after the test.

    Yields:
        Path: Path to temporary directory
    """
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)
