# subtile_ocr/glyphs/library.py
"""
Glyph Library

Ordered, append-only collection of learned glyphs with:
    - Exact lookup (same size, same pixels)
    - Proximity lookup ranked by pixel agreement count
    - Whole-library persistence as a RON sequence of glyph records

Insertion order matters: proximity ties keep the earliest learned glyph
first, so the library is never reordered.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import IO

import numpy as np

from ..errors import (
    FailedToLoadFile,
    GlyphRonDeserialization,
    GlyphRonSerialization,
    GlyphsLibraryCreateDirectory,
    GlyphsLibraryOpenFile,
    InvariantError,
    NoFileToLoad,
)
from . import ron
from .glyph import Glyph

logger = logging.getLogger(__name__)

LIBRARY_FILENAME = "glyph_library.ron"


class GlyphLibrary:
    """In-memory glyph cache."""

    def __init__(self, glyphs: list[Glyph] | None = None):
        self._glyphs: list[Glyph] = list(glyphs) if glyphs else []

    def __len__(self) -> int:
        return len(self._glyphs)

    def __iter__(self) -> Iterator[Glyph]:
        return iter(self._glyphs)

    def __repr__(self) -> str:
        return f"GlyphLibrary({len(self._glyphs)} glyphs)"

    @property
    def glyphs(self) -> tuple[Glyph, ...]:
        return tuple(self._glyphs)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def find_exact(self, image: np.ndarray) -> str | None:
        """Mapped characters of the first glyph identical to ``image``."""
        for glyph in self._glyphs:
            if glyph.image.shape == image.shape and np.array_equal(glyph.image, image):
                return glyph.characters
        return None

    def find_closest(self, image: np.ndarray) -> list[tuple[int, Glyph]]:
        """
        Rank same-size glyphs by the number of pixels they share with ``image``.

        Returns:
            (score, glyph) pairs, best first; equal scores keep library order
        """
        scored = [
            (int(np.count_nonzero(glyph.image == image)), glyph)
            for glyph in self._glyphs
            if glyph.image.shape == image.shape
        ]
        return sorted(scored, key=lambda item: -item[0])

    def add_glyph(self, glyph: Glyph):
        self._glyphs.append(glyph)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self, reader: IO[str]):
        """
        Read glyph records from ``reader`` into this empty library.

        Raises:
            InvariantError: the library already holds glyphs
            GlyphRonDeserialization: malformed file content
            GlyphError: a record holds an invalid glyph image
        """
        if self._glyphs:
            raise InvariantError("Glyphs can only be loaded into an empty library")

        try:
            records = ron.loads(reader.read())
        except ron.RonSyntaxError as e:
            raise GlyphRonDeserialization(str(e)) from e

        if not isinstance(records, list):
            raise GlyphRonDeserialization(
                f"expected a sequence of glyphs, found {type(records).__name__}"
            )

        glyphs = [Glyph.from_record(record) for record in records]
        self._glyphs.extend(glyphs)

    def dumps(self, compact: bool = False) -> str:
        """RON text of every glyph, pretty printed unless ``compact``."""
        records = [glyph.to_record(compact=compact) for glyph in self._glyphs]
        try:
            text = ron.dumps(records, pretty=not compact)
        except ron.RonTypeError as e:
            raise GlyphRonSerialization(str(e)) from e
        return text if compact else text + "\n"

    def save(self, writer: IO[str], compact: bool = False):
        """Write every glyph to ``writer``, pretty printed unless ``compact``."""
        writer.write(self.dumps(compact=compact))

    def load_from_path(self, directory: Path | str):
        path = Path(directory) / LIBRARY_FILENAME
        try:
            with open(path, "r", encoding="utf-8") as f:
                self.load(f)
        except FileNotFoundError as e:
            raise NoFileToLoad(path) from e
        except (OSError, UnicodeDecodeError) as e:
            raise FailedToLoadFile(path) from e
        logger.info(f"Loaded {len(self._glyphs)} glyph(s) from {path}")

    def save_to_path(self, directory: Path | str, compact: bool = False):
        """
        Write the library file into ``directory``.

        The text is built before the file is opened, a serialization error
        leaves an existing library file untouched.
        """
        text = self.dumps(compact=compact)
        directory = Path(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise GlyphsLibraryCreateDirectory(directory) from e

        path = directory / LIBRARY_FILENAME
        try:
            f = open(path, "w", encoding="utf-8")
        except OSError as e:
            raise GlyphsLibraryOpenFile(path) from e
        with f:
            f.write(text)
        logger.info(f"Saved {len(self._glyphs)} glyph(s) to {path}")
