# subtile_ocr/preprocessing.py
"""
Subtitle Image Binarization

Turns an indexed subtitle bitmap into the two-color image both recognizers
consume: black ink (0) on white background (255).

    1. Convert the slot colors to linear luminance (Rec.709 weights)
    2. Slot 0 is background; another slot is ink when it is visible
       (alpha >= alpha threshold) and bright (luminance >= luma threshold)
    3. If no slot qualifies (dark text schemes), visibility alone decides
    4. Add a white border around the result

PGS palettes carry the luma of each entry; an entry is ink when both its
alpha and its luma reach the PGS thresholds (0 - 255 scale).
"""

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from .errors import ImageWithGrayIsInvalid
from .glyphs.pieces import BACKGROUND, INK
from .parsers.base import SubtitleImage

logger = logging.getLogger(__name__)


@dataclass
class BinarizeConfig:
    """Configuration for the binarization of indexed subtitles."""

    luma_threshold: float = 0.6  # linear luminance, 0.0 - 1.0
    alpha_threshold: int = 1  # 0 - 15 scale
    border: int = 5  # White border in pixels
    pgs_luma_threshold: int = 100  # 0 - 255 scale
    pgs_alpha_threshold: int = 100  # 0 - 255 scale


def srgb_to_linear(channel: int) -> float:
    value = channel / 255.0
    if value <= 0.04045:
        return value / 12.92
    return ((value + 0.055) / 1.055) ** 2.4


def rgb_palette_to_luminance(colors) -> list[float]:
    """Linear luminance (0.0 - 1.0) of each sRGB color."""
    return [
        0.2126 * srgb_to_linear(r) + 0.7152 * srgb_to_linear(g) + 0.0722 * srgb_to_linear(b)
        for r, g, b in colors
    ]


def ink_slots(
    colors, alphas, luma_threshold: float = 0.6, alpha_threshold: int = 1
) -> list[bool]:
    """Which of the four palette slots are drawn as ink."""
    luminances = rgb_palette_to_luminance(colors)
    is_ink = [
        i != 0 and alpha >= alpha_threshold and luma >= luma_threshold
        for i, (alpha, luma) in enumerate(zip(alphas, luminances))
    ]
    if not any(is_ink):
        logger.debug("No bright slot found, falling back to alpha only")
        is_ink = [i != 0 and alpha >= alpha_threshold for i, alpha in enumerate(alphas)]
    return is_ink


def luma_alpha_slots(lumas, alphas, luma_threshold: int = 100, alpha_threshold: int = 100) -> list[bool]:
    """Which entries of a YCbCr palette are drawn as ink."""
    return [alpha >= alpha_threshold and luma >= luma_threshold for luma, alpha in zip(lumas, alphas)]


def add_border(image: np.ndarray, size: int) -> np.ndarray:
    if size <= 0:
        return image
    return cv2.copyMakeBorder(
        image,
        top=size,
        bottom=size,
        left=size,
        right=size,
        borderType=cv2.BORDER_CONSTANT,
        value=BACKGROUND,
    )


def binarize_subtitle(subtitle: SubtitleImage, config: BinarizeConfig | None = None) -> np.ndarray:
    """
    Binarize an indexed subtitle.

    Returns:
        uint8 image holding only INK and BACKGROUND values
    """
    config = config or BinarizeConfig()
    if subtitle.palette_luma is not None:
        is_ink = luma_alpha_slots(
            subtitle.palette_luma,
            subtitle.alphas,
            config.pgs_luma_threshold,
            config.pgs_alpha_threshold,
        )
    else:
        is_ink = ink_slots(
            subtitle.colors, subtitle.alphas, config.luma_threshold, config.alpha_threshold
        )
    lookup = np.array([INK if ink else BACKGROUND for ink in is_ink], dtype=np.uint8)
    binary = lookup[np.clip(subtitle.indexed, 0, len(lookup) - 1)]
    return add_border(binary, config.border)


def to_rgba(subtitle: SubtitleImage) -> np.ndarray:
    """Render the subtitle with its own colors, alpha scaled to 0 - 255."""
    palette = np.array(
        [
            (r, g, b, min(alpha, subtitle.alpha_max) * 255 // subtitle.alpha_max)
            for (r, g, b), alpha in zip(subtitle.colors, subtitle.alphas)
        ],
        dtype=np.uint8,
    )
    return palette[np.clip(subtitle.indexed, 0, len(palette) - 1)]


def ensure_binary(image: np.ndarray) -> np.ndarray:
    """
    Validate a caller-provided image as a two-color bitmap.

    RGB and RGBA images must be uint8 and are converted to grayscale first.

    Raises:
        ImageWithGrayIsInvalid: first pixel (row-major) that is neither ink
            nor background
    """
    image = np.asarray(image)
    if image.ndim == 3:
        if image.dtype != np.uint8:
            raise ValueError(f"Color images must be uint8, got {image.dtype}")
        code = cv2.COLOR_RGBA2GRAY if image.shape[2] == 4 else cv2.COLOR_RGB2GRAY
        image = cv2.cvtColor(image, code)
    if image.ndim != 2:
        raise ValueError(f"Expected a 2-D image, got shape {image.shape}")
    # Checked before any cast, 256 or -1 must not wrap onto ink or background
    gray = np.flatnonzero((image != INK) & (image != BACKGROUND))
    if gray.size:
        y, x = divmod(int(gray[0]), image.shape[1])
        raise ImageWithGrayIsInvalid(image[y, x].item(), x, y)
    return image.astype(np.uint8)
