# subtile_ocr/glyphs/__init__.py
"""
Glyph engine: segmentation of binarized subtitle images into pieces and
their recognition against a learned glyph library.
"""

from .askers import MappingAsker, RejectAsker, TerminalAsker
from .debug import dump_pieces
from .glyph import Glyph
from .library import LIBRARY_FILENAME, GlyphLibrary
from .ocr import GlyphOcr
from .pieces import ImagePieces, Line, Piece
from .recognizer import PROXIMITY_THRESHOLD, GlyphCharAsker, GlyphResult, recognize
from .segmenter import ImageCharacterSplitter, split_image

__all__ = [
    "LIBRARY_FILENAME",
    "PROXIMITY_THRESHOLD",
    "Glyph",
    "GlyphCharAsker",
    "GlyphLibrary",
    "GlyphOcr",
    "GlyphResult",
    "ImageCharacterSplitter",
    "ImagePieces",
    "Line",
    "MappingAsker",
    "Piece",
    "RejectAsker",
    "TerminalAsker",
    "dump_pieces",
    "recognize",
    "split_image",
]
