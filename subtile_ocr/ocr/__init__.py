# subtile_ocr/ocr/__init__.py
"""Whole-image OCR with Tesseract."""

from .engine import (
    PYTESSERACT_AVAILABLE,
    TesseractContext,
    TesseractOptions,
    TesseractPool,
    check_tesseract_available,
)

__all__ = [
    "PYTESSERACT_AVAILABLE",
    "TesseractContext",
    "TesseractOptions",
    "TesseractPool",
    "check_tesseract_available",
]
