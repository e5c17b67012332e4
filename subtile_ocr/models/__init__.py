# subtile_ocr/models/__init__.py
from .area import Area
from .enums import OcrEngine, SubtitleFormat
from .results import OcrOutcome, PipelineResult, TimeSpan
from .settings import AppSettings

__all__ = [
    "AppSettings",
    "Area",
    "OcrEngine",
    "OcrOutcome",
    "PipelineResult",
    "SubtitleFormat",
    "TimeSpan",
]
