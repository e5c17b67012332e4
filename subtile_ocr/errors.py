# subtile_ocr/errors.py
"""
Exception types raised by subtile_ocr.

Recoverable conditions derive from SubtileOcrError and are returned to the
caller unchanged. InvariantError flags programming errors and is never
caught by the pipeline.
"""

from __future__ import annotations

from pathlib import Path


class SubtileOcrError(Exception):
    """Base class for every recoverable subtile_ocr error."""


class InvariantError(RuntimeError):
    """Raised when an internal invariant is broken (a bug, not bad input)."""


# =============================================================================
# Segmentation
# =============================================================================


class SegmentationError(SubtileOcrError):
    """Splitting an image into pieces failed."""


class ImageWithGrayIsInvalid(SegmentationError):
    def __init__(self, value: int, x: int, y: int):
        self.value = value
        self.x = x
        self.y = y
        super().__init__(
            "The image is not correctly prepared, some pixels are not white or black "
            f"(value {value} at {x},{y})"
        )


class NoCharactersFound(SegmentationError):
    def __init__(self):
        super().__init__("No character found")


# =============================================================================
# Recognition
# =============================================================================


class RecognitionError(SubtileOcrError):
    """Converting pieces to text failed."""


class StopGlyphProcess(RecognitionError):
    def __init__(self):
        super().__init__("Stop Glyph processing")


# =============================================================================
# Glyphs and glyph library
# =============================================================================


class GlyphError(SubtileOcrError):
    """Glyph (de)serialization or library persistence failed."""


class PixelSerializeInvalidValue(GlyphError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"Invalid pixel value `{value}` for serialization")


class PixelDeserializeInvalidValue(GlyphError):
    def __init__(self, char: str):
        self.char = char
        super().__init__(f"Invalid pixel value `{char}` for deserialization")


class EmptyGlyphImage(GlyphError):
    def __init__(self):
        super().__init__("Empty glyph image")


class GlyphImageSizeMismatch(GlyphError):
    def __init__(self, width: int, height: int, count: int):
        self.width = width
        self.height = height
        self.count = count
        super().__init__(
            f"Failed to create Image for Glyph: {width}x{height} needs "
            f"{width * height} pixels, got {count}"
        )


class GlyphRonSerialization(GlyphError):
    def __init__(self, reason: str = ""):
        message = "Failed to serialize a Glyph with ron format"
        super().__init__(f"{message}: {reason}" if reason else message)


class GlyphRonDeserialization(GlyphError):
    def __init__(self, reason: str = ""):
        message = "Failed to deserialize a Glyph with ron format"
        super().__init__(f"{message}: {reason}" if reason else message)


class NoFileToLoad(GlyphError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__("There is no Glyph Library to load.")


class FailedToLoadFile(GlyphError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to load Glyph Library {path}")


class GlyphsLibraryCreateDirectory(GlyphError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to create directory for save Glyphs Library: {path}")


class GlyphsLibraryOpenFile(GlyphError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to open Glyphs Library file to write it: {path}")


# =============================================================================
# Tesseract
# =============================================================================


class OcrError(SubtileOcrError):
    """Whole-image OCR with Tesseract failed."""


class TesseractNotAvailable(OcrError):
    pass


class TesseractFailed(OcrError):
    pass


# =============================================================================
# Pipeline
# =============================================================================


class PipelineError(SubtileOcrError):
    """Top level conversion failed."""


class NoFileExtension(PipelineError):
    def __init__(self):
        super().__init__("The file doesn't have a valid extension, can't choose a parser.")


class InvalidFileExtension(PipelineError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"The file extension '{extension}' is not managed.")


class SubtitleParseError(PipelineError):
    pass


class OcrFails(PipelineError):
    def __init__(self, count: int):
        self.count = count
        super().__init__(f"Error happen during OCR on {count} subtitles images")


class WriteSrtError(PipelineError):
    def __init__(self, path: Path | None):
        self.path = path
        if path is None:
            super().__init__("Could not write SRT on stdout.")
        else:
            super().__init__(f"Could not write SRT file {path}")
