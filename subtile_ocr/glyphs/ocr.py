# subtile_ocr/glyphs/ocr.py
"""
Glyph OCR over a batch of binarized images.

Images are recognized one after another against a single library, loaded
before the batch and saved after it, also when the asker aborted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np

from .. import preprocessing
from ..errors import GlyphError, NoFileToLoad, SegmentationError
from ..models.results import OcrOutcome
from .debug import dump_pieces
from .library import GlyphLibrary
from .recognizer import GlyphCharAsker, recognize
from .segmenter import split_image

logger = logging.getLogger(__name__)


class GlyphOcr:
    """
    Recognizes images with a glyph library and an asker.

    Args:
        library_dir: Directory of the glyph library file
        asker: Consulted for pieces the library does not know
        compact: Save the library in the compact image layout
        dump_dir: When set, the pieces of every image are dumped there
    """

    def __init__(
        self,
        library_dir: Path | str,
        asker: GlyphCharAsker,
        compact: bool = False,
        dump_dir: Path | str | None = None,
    ):
        self.library_dir = Path(library_dir)
        self.asker = asker
        self.compact = compact
        self.dump_dir = Path(dump_dir) if dump_dir is not None else None
        self.library = GlyphLibrary()

    def load_library(self) -> GlyphLibrary:
        library = GlyphLibrary()
        try:
            library.load_from_path(self.library_dir)
        except NoFileToLoad as e:
            logger.info(f"{e} Starting with an empty library in {self.library_dir}")
        self.library = library
        return library

    def recognize_image(self, index: int, image: np.ndarray) -> OcrOutcome:
        """
        Segment and recognize one image.

        RGB and RGBA images are converted to grayscale first. Segmentation
        errors, gray pixels included, are returned as a failed outcome;
        StopGlyphProcess propagates.
        """
        try:
            pieces = split_image(preprocessing.ensure_binary(image))
        except SegmentationError as e:
            return OcrOutcome.failure(e)

        if self.dump_dir is not None:
            dump_pieces(self.dump_dir, index, pieces)

        return OcrOutcome.success(recognize(pieces, self.library, self.asker))

    def process(
        self,
        images: Sequence[np.ndarray],
        progress_callback: Callable[[str, float], None] | None = None,
    ) -> list[OcrOutcome]:
        self.load_library()
        known = len(self.library)
        outcomes = []
        try:
            for index, image in enumerate(images):
                outcomes.append(self.recognize_image(index, image))
                if progress_callback:
                    progress_callback(
                        f"Glyph OCR {index + 1}/{len(images)}", (index + 1) / len(images)
                    )
        except BaseException:
            try:
                self._save_library(known)
            except GlyphError as e:
                logger.error(f"Could not save the glyph library: {e}")
            raise
        self._save_library(known)
        return outcomes

    def _save_library(self, known: int):
        self.library.save_to_path(self.library_dir, compact=self.compact)
        logger.info(f"Learned {len(self.library) - known} new glyph(s)")
