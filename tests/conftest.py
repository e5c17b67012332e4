# tests/conftest.py
from pathlib import Path

import pytest

from tests.fakes import blank, draw


@pytest.fixture
def i_image():
    """20x10 image holding one vertical bar shaped like an 'I'."""
    return draw(blank(20, 10), 9, 2, 9, 7)


@pytest.fixture
def word_image():
    """
    One line of three glyphs, the middle one carrying an accent:

        x 2..3    bar      y 1..12
        x 6..8    bar      y 5..12
        x 7       accent   y 2..3
        x 12..16  block    y 5..12
    """
    image = blank(20, 15)
    draw(image, 2, 1, 3, 12)
    draw(image, 6, 5, 8, 12)
    draw(image, 7, 2, 7, 3)
    draw(image, 12, 5, 16, 12)
    return image


@pytest.fixture
def two_line_image():
    image = blank(16, 24)
    draw(image, 2, 2, 3, 8)
    draw(image, 8, 2, 9, 8)
    draw(image, 4, 14, 6, 20)
    return image


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    return tmp_path / ".glyphs"


@pytest.fixture
def fake_tesseract():
    """FakeTesseractContext with a clean registry."""
    from tests.fakes import FakeTesseractContext
    FakeTesseractContext.reset()
    yield FakeTesseractContext
    FakeTesseractContext.reset()
