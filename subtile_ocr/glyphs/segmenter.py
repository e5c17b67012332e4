# subtile_ocr/glyphs/segmenter.py
"""
Character Segmentation

Splits a binarized subtitle image (black ink on white background) into
pieces of connected ink and organizes them into text lines:

    1. Connected components: row-major scan, 4-connectivity flood fill
    2. Line clustering: a piece joins the first line it overlaps vertically
    3. Ordering: pieces sorted left to right inside each line
    4. Accent grouping: pieces horizontally inside the previous piece merge
    5. Baseline: computed from the body-sized pieces of each line
    6. Rendering: one standalone bitmap per piece

Line clustering is a single greedy pass. A line whose vertical extent only
grows after later pieces were already assigned is not revisited.
"""

import logging

import numpy as np

from ..errors import ImageWithGrayIsInvalid, NoCharactersFound
from .pieces import BACKGROUND, INK, ImagePieces, Line, Piece

logger = logging.getLogger(__name__)


class ImageCharacterSplitter:
    """Extracts character pieces from a black and white image."""

    def __init__(self, image: np.ndarray):
        image = np.asarray(image)
        if image.ndim != 2:
            raise ValueError(f"Expected a 2-D grayscale image, got shape {image.shape}")
        if image.dtype != np.uint8:
            # Values like 256 or -1 would wrap onto ink or background in uint8
            gray = np.flatnonzero((image != INK) & (image != BACKGROUND))
            if gray.size:
                y, x = divmod(int(gray[0]), image.shape[1])
                raise ImageWithGrayIsInvalid(image[y, x].item(), x, y)
        # Private working copy, erased while pieces are cut out of it
        self._work = image.astype(np.uint8, copy=True)

    def split(self) -> ImagePieces:
        """
        Split the image into lines of rendered pieces.

        Raises:
            ImageWithGrayIsInvalid: a pixel is neither ink nor background
            NoCharactersFound: the image holds no ink at all
        """
        pieces = self._cut_pieces()
        if not pieces:
            raise NoCharactersFound()

        lines = organize_pieces_in_lines(pieces)
        for line in lines:
            line.sort_pieces()
        for line in lines:
            line.group_accents()
        for line in lines:
            line.establish_baseline()
        for line in lines:
            line.render_pieces()

        result = ImagePieces(lines)
        logger.debug(
            f"Split image {self._work.shape[1]}x{self._work.shape[0]} into "
            f"{len(result)} line(s), {result.piece_count()} piece(s)"
        )
        return result

    def _cut_pieces(self) -> list[Piece]:
        work = self._work
        width = work.shape[1]
        pieces: list[Piece] = []

        # Row-major visit of every pixel that is not background at start;
        # flood fills only ever turn ink into background.
        for flat_index in np.flatnonzero(work != BACKGROUND):
            y, x = divmod(int(flat_index), width)
            value = int(work[y, x])
            if value == INK:
                pieces.append(self._cut_piece(x, y))
            elif value != BACKGROUND:
                raise ImageWithGrayIsInvalid(value, x, y)

        return pieces

    def _cut_piece(self, x: int, y: int) -> Piece:
        work = self._work
        height, width = work.shape
        work[y, x] = BACKGROUND
        pixels = [(x, y)]

        index = 0
        while index < len(pixels):
            px, py = pixels[index]
            index += 1

            # non-diagonal neighbours only
            neighbours = []
            if px > 0:
                neighbours.append((px - 1, py))
            if px < width - 1:
                neighbours.append((px + 1, py))
            if py > 0:
                neighbours.append((px, py - 1))
            if py < height - 1:
                neighbours.append((px, py + 1))

            for nx, ny in neighbours:
                if work[ny, nx] == INK:
                    work[ny, nx] = BACKGROUND
                    pixels.append((nx, ny))

        return Piece(pixels)


def organize_pieces_in_lines(pieces: list[Piece]) -> list[Line]:
    """Assign each piece to the first line it overlaps vertically, in order."""
    lines: list[Line] = []
    for piece in pieces:
        for line in lines:
            if line.area.intersects_y(piece.area):
                line.add_piece(piece)
                break
        else:
            lines.append(Line(piece))
    return lines


def split_image(image: np.ndarray) -> ImagePieces:
    """Split a binarized image into lines of pieces."""
    return ImageCharacterSplitter(image).split()
