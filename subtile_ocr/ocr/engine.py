# subtile_ocr/ocr/engine.py
"""
Tesseract OCR Engine Wrapper

Whole-image recognition, the alternative to the glyph engine:
    - One TesseractContext per worker, built before the batch starts
    - Contexts handed to tasks explicitly through a queue
    - One OcrOutcome per image, in input order; a failing image does not
      cancel the others

Uses pytesseract as the interface to Tesseract 5.x
"""

from __future__ import annotations

import logging
import os
import queue
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np
from PIL import Image

from ..errors import TesseractFailed, TesseractNotAvailable
from ..models.results import OcrOutcome

try:
    import pytesseract

    PYTESSERACT_AVAILABLE = True
except ImportError:
    PYTESSERACT_AVAILABLE = False

logger = logging.getLogger(__name__)

# Variables set on every engine before the user ones, so -c can override them
BASE_VARIABLES = {
    # Deterministic output across workers
    "classify_enable_learning": "0",
    # Avoid reading I and l as |
    "tessedit_char_blacklist": "|[]",
    "tessedit_do_invert": "0",
}
PAGE_SEGMENTATION_MODE = 6  # single uniform block of text


@dataclass
class TesseractOptions:
    """Options of the Tesseract engine."""

    tessdata_dir: str | None = None
    language: str = "eng"
    config: dict[str, str] = field(default_factory=dict)
    dpi: int = 150


def check_tesseract_available() -> str:
    """
    Verify Tesseract is installed and accessible.

    Returns:
        Tesseract version string

    Raises:
        TesseractNotAvailable: pytesseract or the tesseract binary is missing
    """
    if not PYTESSERACT_AVAILABLE:
        raise TesseractNotAvailable(
            "pytesseract is not installed. Install with: pip install pytesseract"
        )
    try:
        return str(pytesseract.get_tesseract_version())
    except pytesseract.TesseractNotFoundError as e:
        raise TesseractNotAvailable(
            "Tesseract not found or not accessible.\n"
            "Install Tesseract: apt install tesseract-ocr tesseract-ocr-eng"
        ) from e


class TesseractContext:
    """One configured Tesseract engine, used by a single worker at a time."""

    def __init__(self, options: TesseractOptions):
        if not PYTESSERACT_AVAILABLE:
            raise TesseractNotAvailable(
                "pytesseract is not installed. Install with: pip install pytesseract"
            )
        self.options = options
        self.variables = {**BASE_VARIABLES, **options.config}
        self.config = self._build_config()
        self.closed = False

    def _build_config(self) -> str:
        config_parts = [f"--psm {PAGE_SEGMENTATION_MODE}"]
        if self.options.tessdata_dir:
            config_parts.append(f'--tessdata-dir "{self.options.tessdata_dir}"')
        config_parts.append(f"--dpi {self.options.dpi}")
        for key, value in self.variables.items():
            config_parts.append(f"-c {key}={value}")
        return " ".join(config_parts)

    def recognize(self, image: np.ndarray) -> str:
        if self.closed:
            raise TesseractFailed("Tesseract context used after close()")
        try:
            return pytesseract.image_to_string(
                Image.fromarray(image), lang=self.options.language, config=self.config
            )
        except pytesseract.TesseractNotFoundError as e:
            raise TesseractNotAvailable(str(e)) from e
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise TesseractFailed(f"could not get Tesseract text: {e}") from e

    def close(self):
        self.closed = True


class TesseractPool:
    """
    Runs Tesseract over batches of images on a thread pool.

    Args:
        options: Engine options shared by every worker
        max_workers: Number of workers, 0 for one per CPU
        context_factory: Builds the context of each worker
    """

    def __init__(
        self,
        options: TesseractOptions,
        max_workers: int = 0,
        context_factory: Callable[[TesseractOptions], TesseractContext] = TesseractContext,
    ):
        self.options = options
        self.max_workers = max_workers or os.cpu_count() or 1
        self.context_factory = context_factory

    def process(
        self,
        images: Sequence[np.ndarray],
        progress_callback: Callable[[str, float], None] | None = None,
    ) -> list[OcrOutcome]:
        # Parallelism comes from the pool, not from Tesseract itself
        os.environ.setdefault("OMP_THREAD_LIMIT", "1")

        contexts: queue.Queue = queue.Queue()
        built = []
        try:
            for i in range(self.max_workers):
                context = self.context_factory(self.options)
                built.append(context)
                contexts.put(context)
                logger.debug(f"Init tesseract with lang `{self.options.language}` for worker {i}")

            def run(image: np.ndarray) -> OcrOutcome:
                context = contexts.get()
                try:
                    return OcrOutcome.success(context.recognize(image))
                except TesseractFailed as e:
                    return OcrOutcome.failure(e)
                finally:
                    contexts.put(context)

            outcomes = []
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                for i, outcome in enumerate(executor.map(run, images)):
                    outcomes.append(outcome)
                    if progress_callback:
                        progress_callback(
                            f"Tesseract OCR {i + 1}/{len(images)}", (i + 1) / len(images)
                        )
            return outcomes
        finally:
            for context in built:
                context.close()
