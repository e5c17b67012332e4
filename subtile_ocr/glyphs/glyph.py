# subtile_ocr/glyphs/glyph.py
"""
Glyph records and their bitmap codec.

A glyph bitmap is stored with one character per pixel:
    '8' -> ink (0)
    ' ' -> background (255)

Two layouts exist for the bitmap:
    - rows:    ["  8  ", " 888 ", ...]            (human readable)
    - compact: (s: (width, height), p: "  8   888 ...")
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import (
    EmptyGlyphImage,
    GlyphImageSizeMismatch,
    GlyphRonDeserialization,
    GlyphRonSerialization,
    PixelDeserializeInvalidValue,
    PixelSerializeInvalidValue,
)
from .pieces import BACKGROUND, INK
from .ron import Some

INK_CHAR = "8"
BACKGROUND_CHAR = " "

I16_MIN = -(2**15)
I16_MAX = 2**15 - 1


def pixel_to_char(value: int) -> str:
    if value == INK:
        return INK_CHAR
    if value == BACKGROUND:
        return BACKGROUND_CHAR
    raise PixelSerializeInvalidValue(int(value))


def char_to_pixel(char: str) -> int:
    if char == INK_CHAR:
        return INK
    if char == BACKGROUND_CHAR:
        return BACKGROUND
    raise PixelDeserializeInvalidValue(char)


def image_to_rows(image: np.ndarray) -> list[str]:
    return ["".join(pixel_to_char(int(value)) for value in row) for row in image]


def rows_to_image(rows: list[str]) -> np.ndarray:
    if not rows or not rows[0]:
        raise EmptyGlyphImage()
    width = len(rows[0])
    pixels = [char_to_pixel(char) for row in rows for char in row]
    if any(len(row) != width for row in rows):
        raise GlyphImageSizeMismatch(width, len(rows), len(pixels))
    return np.array(pixels, dtype=np.uint8).reshape(len(rows), width)


def image_to_compact(image: np.ndarray) -> dict:
    height, width = image.shape
    pixels = "".join(pixel_to_char(int(value)) for value in image.ravel())
    return {"s": (width, height), "p": pixels}


def compact_to_image(data: dict) -> np.ndarray:
    try:
        width, height = data["s"]
        pixels_str = data["p"]
    except (KeyError, TypeError, ValueError):
        raise GlyphRonDeserialization("expected struct GlyphImage (s: (width, height), p: pixels)")
    if not isinstance(width, int) or not isinstance(height, int) or not isinstance(pixels_str, str):
        raise GlyphRonDeserialization("invalid GlyphImage size or pixels")
    if width < 0 or height < 0:
        raise GlyphImageSizeMismatch(width, height, len(pixels_str))
    pixels = [char_to_pixel(char) for char in pixels_str]
    if width == 0 or height == 0:
        raise EmptyGlyphImage()
    if len(pixels) != width * height:
        raise GlyphImageSizeMismatch(width, height, len(pixels))
    return np.array(pixels, dtype=np.uint8).reshape(height, width)


@dataclass(eq=False)
class Glyph:
    """
    A learned bitmap pattern.

    Attributes:
        image: Bitmap (ink 0, background 255)
        orig_y: (top, bottom) offsets of the ink relative to the line
                baseline; negative above the baseline top, positive below
                the baseline bottom
        characters: Mapped text, None for a recorded but unmapped glyph
    """

    image: np.ndarray
    orig_y: tuple[int, int]
    characters: str | None = None

    def __post_init__(self):
        self.image = np.asarray(self.image, dtype=np.uint8)
        self.orig_y = (int(self.orig_y[0]), int(self.orig_y[1]))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Glyph):
            return NotImplemented
        return (
            self.orig_y == other.orig_y
            and self.characters == other.characters
            and self.image.shape == other.image.shape
            and bool(np.array_equal(self.image, other.image))
        )

    def __repr__(self) -> str:
        height, width = self.image.shape
        return f"Glyph({width}x{height}, orig_y={self.orig_y}, characters={self.characters!r})"

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        height, width = self.image.shape
        return width, height

    def to_record(self, compact: bool = False) -> dict:
        """Build the ron record of this glyph."""
        if not all(I16_MIN <= v <= I16_MAX for v in self.orig_y):
            raise GlyphRonSerialization(f"orig_y {self.orig_y} does not fit in i16")
        img = image_to_compact(self.image) if compact else image_to_rows(self.image)
        return {
            "img": img,
            "orig_y": self.orig_y,
            "characters": Some(self.characters) if self.characters is not None else None,
        }

    @classmethod
    def from_record(cls, record) -> Glyph:
        if not isinstance(record, dict):
            raise GlyphRonDeserialization(f"expected struct Glyph, found {type(record).__name__}")
        missing = {"img", "orig_y", "characters"} - record.keys()
        if missing:
            raise GlyphRonDeserialization(f"missing field(s) {', '.join(sorted(missing))}")

        img = record["img"]
        if isinstance(img, list):
            if not all(isinstance(row, str) for row in img):
                raise GlyphRonDeserialization("glyph image rows must be strings")
            image = rows_to_image(img)
        elif isinstance(img, dict):
            image = compact_to_image(img)
        else:
            raise GlyphRonDeserialization(
                "an array of pixel with character ' ' for white and '8' for black"
            )

        orig_y = record["orig_y"]
        if (
            not isinstance(orig_y, tuple)
            or len(orig_y) != 2
            or not all(isinstance(v, int) and I16_MIN <= v <= I16_MAX for v in orig_y)
        ):
            raise GlyphRonDeserialization(f"invalid orig_y {orig_y!r}")

        characters = record["characters"]
        if isinstance(characters, Some):
            characters = characters.value
            if not isinstance(characters, str):
                raise GlyphRonDeserialization(f"invalid characters {characters!r}")
        elif characters is not None:
            raise GlyphRonDeserialization(f"invalid characters {characters!r}")

        return cls(image=image, orig_y=orig_y, characters=characters)
