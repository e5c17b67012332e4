# subtile_ocr/parsers/base.py
# -*- coding: utf-8 -*-
"""
Base classes and dataclasses for subtitle image parsing.

A parser turns a subtitle container into SubtitleImages: a bitmap of
palette indices with the color and alpha of every index, plus timing and
position. VobSub images use four slots with 4-bit alpha; PGS images use up
to 256 entries with 8-bit alpha and keep the luma of each entry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np


@dataclass
class SubtitleImage:
    """
    One subtitle bitmap extracted from an image-based format.

    Attributes:
        index: Sequential index of this subtitle (0-based)
        start_ms: Start time in milliseconds
        end_ms: End time in milliseconds
        indexed: 2-D array of palette indices, indexed [y, x]
        colors: RGB color of each palette index
        alphas: Alpha of each index, 0 (transparent) to alpha_max (opaque)
        x: X coordinate of top-left corner in the video frame
        y: Y coordinate of top-left corner in the video frame
        frame_width: Width of the video frame
        frame_height: Height of the video frame
        is_forced: Whether this is a forced subtitle
        alpha_max: Opaque alpha value, 15 for VobSub and 255 for PGS
        palette_luma: Luma (Y, 0-255) of each index when the source palette
                      is YCbCr (PGS), None otherwise
    """
    index: int
    start_ms: int
    end_ms: int
    indexed: np.ndarray
    colors: List[Tuple[int, int, int]] = field(
        default_factory=lambda: [(0, 0, 0), (255, 255, 255), (0, 0, 0), (128, 128, 128)]
    )
    alphas: List[int] = field(default_factory=lambda: [0, 15, 15, 15])
    x: int = 0
    y: int = 0
    frame_width: int = 720  # Default DVD resolution
    frame_height: int = 480
    is_forced: bool = False
    alpha_max: int = 15
    palette_luma: Optional[List[int]] = None

    @property
    def width(self) -> int:
        return self.indexed.shape[1]

    @property
    def height(self) -> int:
        return self.indexed.shape[0]

    @property
    def start_time(self) -> str:
        """Return start time as HH:MM:SS.mmm string."""
        return self._ms_to_timestamp(self.start_ms)

    @property
    def end_time(self) -> str:
        """Return end time as HH:MM:SS.mmm string."""
        return self._ms_to_timestamp(self.end_ms)

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @staticmethod
    def _ms_to_timestamp(ms: int) -> str:
        """Convert milliseconds to HH:MM:SS.mmm format."""
        if ms < 0:
            ms = 0
        hours = ms // 3600000
        ms %= 3600000
        minutes = ms // 60000
        ms %= 60000
        seconds = ms // 1000
        milliseconds = ms % 1000
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{milliseconds:03d}"


@dataclass
class ParseResult:
    """
    Result of parsing a subtitle file.

    Attributes:
        subtitles: List of extracted subtitle images
        format_info: Information about the source format
        errors: Errors that stopped the parsing
        warnings: Entries that could not be read and were skipped
    """
    subtitles: List[SubtitleImage] = field(default_factory=list)
    format_info: dict = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def subtitle_count(self) -> int:
        return len(self.subtitles)


class SubtitleImageParser(ABC):
    """
    Abstract base class for subtitle image parsers.

    Subclasses must implement:
        - parse(): Extract subtitle images from a file
        - can_parse(): Check if a file can be parsed by this parser
    """

    @abstractmethod
    def parse(self, file_path: Path) -> ParseResult:
        """
        Parse a subtitle file and extract images.

        Args:
            file_path: Path to the subtitle file (.idx for VobSub, .sup for PGS)

        Returns:
            ParseResult containing extracted subtitle images and metadata
        """

    @abstractmethod
    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the given file."""

    @staticmethod
    def detect_parser(file_path: Path) -> Optional['SubtitleImageParser']:
        """
        Detect the appropriate parser for a file based on extension.

        Returns:
            Appropriate parser instance, or None if no parser matches
        """
        from .pgs import PgsParser
        from .vobsub import VobSubParser

        suffix = Path(file_path).suffix.lower()

        if suffix in ('.idx', '.sub'):
            return VobSubParser()
        elif suffix == '.sup':
            return PgsParser()

        return None
