# subtile_ocr/glyphs/recognizer.py
"""
Glyph Recognition

Converts the pieces of a segmented image to text. For each piece, in line
order and left to right:

    1. Exact match in the glyph library
    2. Closest same-size glyph whose pixel agreement reaches
       PROXIMITY_THRESHOLD and which has mapped characters
    3. Ask a GlyphCharAsker; the answer is learned as a new glyph

Asking is a blocking call, so one image is recognized strictly piece by piece.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..errors import InvariantError, StopGlyphProcess
from .glyph import Glyph
from .library import GlyphLibrary
from .pieces import ImagePieces, Line, Piece

logger = logging.getLogger(__name__)

PROXIMITY_THRESHOLD = 0.95


@dataclass(frozen=True)
class GlyphResult:
    """Answer of an asker: the characters of a piece, or abort (None)."""

    characters: str | None

    def __post_init__(self):
        if self.characters is not None and not self.characters:
            raise ValueError("A glyph answer needs at least one character")

    @classmethod
    def abort(cls) -> GlyphResult:
        return cls(None)

    @classmethod
    def chars(cls, text: str) -> GlyphResult:
        return cls(text)

    @property
    def is_abort(self) -> bool:
        return self.characters is None


class GlyphCharAsker(ABC):
    """Source of characters for pieces the library cannot recognize."""

    @abstractmethod
    def ask_char_for_glyph(self, piece: Piece) -> GlyphResult:
        """
        Give the characters drawn by ``piece``.

        ``piece.image`` is the rendered bitmap and ``piece.area`` its
        position in the subtitle image. May block indefinitely.
        """


def recognize(pieces: ImagePieces, library: GlyphLibrary, asker: GlyphCharAsker) -> str:
    """
    Recognize the text of a segmented image, one output line per Line.

    Glyphs learned from the asker are added to ``library`` and stay there
    even when a later piece aborts.

    Raises:
        StopGlyphProcess: the asker aborted
    """
    text = []
    for line in pieces:
        for piece in line.pieces:
            text.append(_recognize_piece(line, piece, library, asker))
        text.append("\n")
    return "".join(text)


def _recognize_piece(
    line: Line, piece: Piece, library: GlyphLibrary, asker: GlyphCharAsker
) -> str:
    image = piece.image
    exact = library.find_exact(image)
    if exact is not None:
        return exact

    candidates = library.find_closest(image)
    if logger.isEnabledFor(logging.DEBUG):
        _log_proximity(piece, candidates)

    if candidates:
        score, glyph = candidates[0]
        if score / image.size >= PROXIMITY_THRESHOLD and glyph.characters is not None:
            return glyph.characters

    result = asker.ask_char_for_glyph(piece)
    if result.is_abort:
        raise StopGlyphProcess()

    if line.baseline is None:
        raise InvariantError(f"Baseline not established for {line!r}")
    base_top, base_bottom = line.baseline
    orig_y = (piece.area.top - base_top, piece.area.bottom - base_bottom)
    library.add_glyph(Glyph(image=image.copy(), orig_y=orig_y, characters=result.characters))
    logger.info(f"Learned glyph {result.characters!r} ({piece.area.width}x{piece.area.height})")
    return result.characters


def _log_proximity(piece: Piece, candidates: list[tuple[int, Glyph]]):
    total = piece.image.size
    lines = [f"Closest glyphs for piece at {piece.area}:"]
    for score, glyph in candidates:
        chars = glyph.characters if glyph.characters is not None else ""
        lines.append(f"'{chars}' : {score}/{total} => {score / total:.3f}")
    logger.debug("\n".join(lines))
