# subtile_ocr/models/results.py
"""Result types shared by the recognizers and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


def format_srt_time(ms: int) -> str:
    """Milliseconds as an SRT timestamp (HH:MM:SS,mmm)."""
    ms = max(int(ms), 0)
    hours, ms = divmod(ms, 3600000)
    minutes, ms = divmod(ms, 60000)
    seconds, milliseconds = divmod(ms, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{milliseconds:03d}"


@dataclass(frozen=True)
class TimeSpan:
    """Display interval of a subtitle, in milliseconds."""

    start_ms: int
    end_ms: int

    def __str__(self) -> str:
        return f"{format_srt_time(self.start_ms)} --> {format_srt_time(self.end_ms)}"


@dataclass(frozen=True)
class OcrOutcome:
    """Text recognized in one subtitle image, or the error that prevented it."""

    text: str | None = None
    error: Exception | None = None

    @classmethod
    def success(cls, text: str) -> OcrOutcome:
        return cls(text=text)

    @classmethod
    def failure(cls, error: Exception) -> OcrOutcome:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    """Summary of one conversion run."""

    subtitle_count: int = 0
    failed_count: int = 0
    output_path: Path | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.failed_count == 0
