# subtile_ocr/pipeline.py
# -*- coding: utf-8 -*-
"""
OCR Pipeline - Main Entry Point

Orchestrates the complete conversion:
    1. Parse source file (VobSub or PGS)
    2. Optionally dump the raw images
    3. Binarize images (and optionally dump them)
    4. Recognize text with the glyph engine or Tesseract
    5. Drop and report images that failed
    6. Write SRT

Usage:
    pipeline = OcrPipeline(settings)
    result = pipeline.run(input_path, output_path)
"""

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from .dump import dump_images
from .errors import InvalidFileExtension, NoFileExtension, SubtitleParseError
from .glyphs.askers import TerminalAsker
from .glyphs.ocr import GlyphOcr
from .glyphs.recognizer import GlyphCharAsker
from .models.enums import OcrEngine, SubtitleFormat
from .models.results import OcrOutcome, PipelineResult, TimeSpan
from .models.settings import AppSettings
from .ocr.engine import TesseractContext, TesseractOptions, TesseractPool, check_tesseract_available
from .parsers import SubtitleImage, SubtitleImageParser
from .preprocessing import BinarizeConfig, binarize_subtitle, to_rgba
from .writers import write_srt

logger = logging.getLogger(__name__)

FORMAT_BY_EXTENSION = {
    '.idx': SubtitleFormat.VOBSUB,
    '.sub': SubtitleFormat.VOBSUB,
    '.sup': SubtitleFormat.PGS,
}


def check_subtitles(
    subtitles: Iterable[Tuple[TimeSpan, OcrOutcome]],
) -> Tuple[List[Tuple[TimeSpan, str]], int]:
    """
    Log failed images and remove them.

    Returns:
        Tuple of (recognized subtitles, number of failed images)
    """
    recognized = []
    failed_count = 0
    for i, (span, outcome) in enumerate(subtitles):
        if outcome.ok:
            recognized.append((span, outcome.text))
            continue
        error = _describe_error(outcome.error)
        logger.warning(f"Error while running OCR on subtitle image ({i + 1} - {span}): {error}")
        failed_count += 1
    return recognized, failed_count


def _describe_error(error: BaseException) -> str:
    """Message of an error followed by the messages of its causes."""
    messages = []
    while error is not None:
        messages.append(str(error))
        error = error.__cause__
    return ': '.join(messages)


class OcrPipeline:
    """
    Conversion of an image-based subtitle file to SRT.

    Args:
        settings: Settings of the run
        asker: Asker of the glyph engine, a TerminalAsker by default
        progress_callback: Optional callback(message: str, progress: float)
        tesseract_context_factory: Builds the Tesseract context of each worker
    """

    def __init__(
        self,
        settings: AppSettings,
        asker: Optional[GlyphCharAsker] = None,
        progress_callback: Optional[Callable[[str, float], None]] = None,
        tesseract_context_factory: Callable[[TesseractOptions], TesseractContext] = TesseractContext,
    ):
        self.settings = settings
        self.asker = asker
        self.progress_callback = progress_callback
        self.tesseract_context_factory = tesseract_context_factory

    def run(self, input_path: Path, output_path: Optional[Path] = None) -> PipelineResult:
        """
        Convert ``input_path``; SRT goes to ``output_path`` or stdout.

        Images that fail are counted in the result, they do not stop the run.

        Raises:
            NoFileExtension, InvalidFileExtension: no parser for the input
            SubtitleParseError: the input could not be parsed
            StopGlyphProcess: the glyph asker aborted
            WriteSrtError: the output could not be written
        """
        start_time = time.time()
        input_path = Path(input_path)

        self._log_progress("Parsing subtitle file", 0.0)
        subtitle_images = self.parse(input_path)
        self._log_progress(f"Found {len(subtitle_images)} subtitles", 0.10)

        dump_dir = Path(self.settings.dump_dir)
        if self.settings.dump_raw_images:
            dump_images(
                dump_dir.with_name(f"{dump_dir.name}_raw"),
                (to_rgba(sub) for sub in subtitle_images),
            )

        images = self.binarize(subtitle_images)
        if self.settings.dump_images:
            dump_images(dump_dir, images)

        self._log_progress(f"Running OCR ({self.settings.ocr_engine.value})", 0.20)
        outcomes = self.recognize(images)

        spans = [TimeSpan(sub.start_ms, sub.end_ms) for sub in subtitle_images]
        subtitles, failed_count = check_subtitles(zip(spans, outcomes))

        self._log_progress("Writing SRT", 0.95)
        write_srt(subtitles, output_path)

        result = PipelineResult(
            subtitle_count=len(subtitles),
            failed_count=failed_count,
            output_path=Path(output_path) if output_path is not None else None,
            duration_seconds=time.time() - start_time,
        )
        self._log_progress(
            f"Done: {result.subtitle_count} subtitle(s), {result.failed_count} failed", 1.0
        )
        return result

    def parse(self, input_path: Path) -> List[SubtitleImage]:
        suffix = input_path.suffix.lower()
        if not suffix:
            raise NoFileExtension()
        parser = SubtitleImageParser.detect_parser(input_path)
        if parser is None:
            raise InvalidFileExtension(suffix.lstrip('.'))
        logger.debug(f"Parsing {input_path} as {FORMAT_BY_EXTENSION[suffix].value}")

        parse_result = parser.parse(input_path)
        if not parse_result.success:
            raise SubtitleParseError(f"Failed to parse: {'; '.join(parse_result.errors)}")
        for warning in parse_result.warnings:
            logger.debug(warning)
        return parse_result.subtitles

    def binarize(self, subtitle_images: List[SubtitleImage]) -> List[np.ndarray]:
        config = BinarizeConfig(
            luma_threshold=self.settings.luma_threshold,
            alpha_threshold=self.settings.alpha_threshold,
            border=self.settings.border,
            pgs_luma_threshold=self.settings.pgs_luma_threshold,
            pgs_alpha_threshold=self.settings.pgs_alpha_threshold,
        )
        return [binarize_subtitle(sub, config) for sub in subtitle_images]

    def recognize(self, images: List[np.ndarray]) -> List[OcrOutcome]:
        settings = self.settings
        if settings.ocr_engine == OcrEngine.GLYPH:
            glyph_ocr = GlyphOcr(
                settings.glyph_library_dir,
                self.asker if self.asker is not None else TerminalAsker(),
                compact=settings.glyph_compact_format,
                dump_dir=settings.dump_dir if settings.dump_pieces else None,
            )
            return glyph_ocr.process(images, self._sub_progress)

        if self.tesseract_context_factory is TesseractContext:
            version = check_tesseract_available()
            logger.info(f"Using Tesseract {version}")
        options = TesseractOptions(
            tessdata_dir=settings.tessdata_dir,
            language=settings.language,
            config=dict(settings.tesseract_config),
            dpi=settings.dpi,
        )
        pool = TesseractPool(options, settings.max_workers, self.tesseract_context_factory)
        return pool.process(images, self._sub_progress)

    def _sub_progress(self, message: str, fraction: float):
        self._log_progress(message, 0.20 + 0.75 * fraction)

    def _log_progress(self, message: str, progress: float):
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message, progress)
