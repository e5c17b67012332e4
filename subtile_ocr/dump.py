# subtile_ocr/dump.py
"""Image dumps for inspecting what the recognizers receive."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


def save_image(image: np.ndarray, path: Path):
    """Save a grayscale, RGB or RGBA uint8 array as an image file."""
    Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8)).save(path)


def dump_images(folder: Path | str, images: Iterable[np.ndarray]) -> int:
    """
    Write ``images`` as ``00000.png``, ``00001.png``... into ``folder``.

    Returns:
        Number of images written
    """
    folder = Path(folder)
    folder.mkdir(parents=True, exist_ok=True)
    count = 0
    for i, image in enumerate(images):
        save_image(image, folder / f"{i:05d}.png")
        count += 1
    logger.info(f"Dumped {count} image(s) to {folder}")
    return count
