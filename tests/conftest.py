"""Shared test fixtures for the badge scanner test suite."""

from pathlib import Path

import numpy as np
import pytest

SAMPLE_OCR_TEXT = "\n".join(
    [
        "Co KANTOR OTORITAS BANDARA WILAYAH I",
        "/ BANDAR UDARA SOEKARNO HATTA",
        "AREA  BERLAKU S/D 12 JAN 2025",
        "A B C",
        "JOHN DOE",
        "SECURITY OFFICER",
        "PT ANGKAS",
        "ID.NO.1234.5678",
    ]
)


def make_frame(value: int, height: int = 40, width: int = 60) -> np.ndarray:
    """Create a uniform RGBA frame with every colour channel set to ``value``."""
    frame = np.full((height, width, 4), value, dtype=np.uint8)
    frame[..., 3] = 255
    return frame


@pytest.fixture
def card_frame() -> np.ndarray:
    """A uniform frame inside the card brightness band."""
    return make_frame(150)


@pytest.fixture
def sample_text() -> str:
    """OCR text of a well-read badge."""
    return SAMPLE_OCR_TEXT


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Synthetic RGBA badge photo: dark text block on a light card."""
    image = np.full((120, 200, 4), 210, dtype=np.uint8)
    image[40:80, 30:170, :3] = 40
    image[..., 3] = 255
    return image


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
