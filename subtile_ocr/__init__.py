# subtile_ocr/__init__.py
"""
subtile_ocr - image-based subtitles to SRT.

Recognizes VobSub subtitle bitmaps either with a learned glyph library
(segmentation into connected pieces, cache lookup, interactive teaching)
or with Tesseract.
"""

from .errors import SubtileOcrError
from .models import AppSettings, OcrEngine
from .pipeline import OcrPipeline, check_subtitles

__version__ = "0.1.0"

__all__ = [
    "AppSettings",
    "OcrEngine",
    "OcrPipeline",
    "SubtileOcrError",
    "check_subtitles",
]
