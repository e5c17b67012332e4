# subtile_ocr/parsers/__init__.py
"""
Subtitle image parsers.

Extract indexed subtitle bitmaps with timing from image-based formats.
"""

from .base import ParseResult, SubtitleImage, SubtitleImageParser
from .pgs import PgsParser
from .vobsub import VobSubParser

__all__ = [
    "ParseResult",
    "PgsParser",
    "SubtitleImage",
    "SubtitleImageParser",
    "VobSubParser",
]
