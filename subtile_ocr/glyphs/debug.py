# subtile_ocr/glyphs/debug.py
"""
Piece dumps

    {base_dir}/
        dumpsplit_0_0/       # image 0, line 0
            00000.png           # pieces, left to right
            00001.png
        dumpsplit_0_1/
            ...
"""

from __future__ import annotations

from pathlib import Path

from ..dump import dump_images
from .pieces import ImagePieces


def pieces_folder(base_dir: Path | str, image_index: int, line_index: int) -> Path:
    return Path(base_dir) / f"dumpsplit_{image_index}_{line_index}"


def dump_pieces(base_dir: Path | str, image_index: int, pieces: ImagePieces) -> list[Path]:
    """Write the rendered pieces of one image, one folder per line."""
    folders = []
    for line_index, images in enumerate(pieces.images()):
        folder = pieces_folder(base_dir, image_index, line_index)
        dump_images(folder, images)
        folders.append(folder)
    return folders
