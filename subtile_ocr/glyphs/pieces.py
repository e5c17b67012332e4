# subtile_ocr/glyphs/pieces.py
"""
Pieces and Lines of a segmented subtitle image.

A Piece is one connected region of ink pixels. Pieces are grouped into
Lines, ordered left to right, merged with their accents, and finally
rendered to standalone bitmaps used as glyph candidates.
"""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np

from ..errors import InvariantError
from ..models.area import Area

INK = 0
BACKGROUND = 255


class Piece:
    """Connected ink region with its bounding box and pixel coordinates."""

    def __init__(self, pixels: list[tuple[int, int]]):
        if not pixels:
            raise InvariantError("A piece needs at least one pixel")
        self.pixels = pixels
        self.area = Area.from_points(pixels)
        self._image: np.ndarray | None = None

    def __repr__(self) -> str:
        return f"Piece(area={self.area}, pixels={len(self.pixels)})"

    @property
    def image(self) -> np.ndarray:
        """Bitmap of the piece, sized to its area. Only valid after render()."""
        if self._image is None:
            raise InvariantError("Piece image requested before render()")
        return self._image

    def extend(self, other: Piece):
        """Merge ``other`` into this piece (accent grouping)."""
        # Pixels must all be known before the bitmap is built
        if self._image is not None:
            raise InvariantError("Cannot extend a piece after its image was rendered")
        if not self.area.intersects_x(other.area):
            raise InvariantError(f"Cannot extend {self!r} with non overlapping {other!r}")

        self.area = self.area.union(other.area)
        self.pixels.extend(other.pixels)

    def render(self):
        if self._image is not None:
            raise InvariantError("Piece image already rendered")

        image = np.full((self.area.height, self.area.width), BACKGROUND, dtype=np.uint8)
        coords = np.asarray(self.pixels, dtype=np.intp)
        image[coords[:, 1] - self.area.top, coords[:, 0] - self.area.left] = INK
        image.setflags(write=False)
        self._image = image


class Line:
    """Pieces sharing a vertical extent, with the baseline of the text line."""

    def __init__(self, piece: Piece):
        self.area = piece.area
        self.pieces: list[Piece] = [piece]
        # (top, bottom)
        self.baseline: tuple[int, int] | None = None

    def __repr__(self) -> str:
        return f"Line(area={self.area}, pieces={len(self.pieces)}, baseline={self.baseline})"

    def add_piece(self, piece: Piece):
        self.area = self.area.union(piece.area)
        self.pieces.append(piece)

    def sort_pieces(self):
        # Left to right only, no right-to-left scripts
        self.pieces.sort(key=lambda piece: piece.area.left)

    def group_accents(self):
        """Merge each piece horizontally contained in the previous one into it."""
        grouped: list[Piece] = []
        for piece in self.pieces:
            if grouped and grouped[-1].area.contains_x(piece.area):
                grouped[-1].extend(piece)
            else:
                grouped.append(piece)
        self.pieces = grouped

    def establish_baseline(self):
        """
        Compute the (top, bottom) baseline from the body-sized pieces.

        Pieces shorter than half the line height (apostrophes, dots) are
        ignored. The bottom is the highest bottom edge and the top the
        lowest top edge of the remaining pieces.
        """
        min_height = self.area.height // 2
        body = [piece.area for piece in self.pieces if piece.area.height >= min_height]
        if not body:
            raise InvariantError(f"No body sized piece to anchor {self!r}")

        base_bottom = min(area.bottom for area in body)
        base_top = max(area.top for area in body)
        if not (self.area.contains_point_y(base_top) and self.area.contains_point_y(base_bottom)):
            raise InvariantError(f"Baseline ({base_top}, {base_bottom}) outside of {self.area}")
        self.baseline = (base_top, base_bottom)

    def render_pieces(self):
        for piece in self.pieces:
            piece.render()


class ImagePieces:
    """Result of splitting one image: its Lines, top to bottom."""

    def __init__(self, lines: list[Line]):
        self._lines = tuple(lines)

    @property
    def lines(self) -> tuple[Line, ...]:
        return self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[Line]:
        return iter(self._lines)

    def images(self) -> Iterator[Iterator[np.ndarray]]:
        """Per line, an iterator over the rendered piece bitmaps."""
        return ((piece.image for piece in line.pieces) for line in self._lines)

    def piece_count(self) -> int:
        return sum(len(line.pieces) for line in self._lines)
