# subtile_ocr/parsers/pgs.py
# -*- coding: utf-8 -*-
"""
PGS (Presentation Graphic Stream) SUP Parser

A .sup file is a sequence of segments, each with a 13-byte header:

    "PG" | PTS (4) | DTS (4) | type (1) | size (2)

Segments are grouped into display sets ending with an END segment:
    - PCS (0x16): composition, the objects shown and their position
    - WDS (0x17): windows, not needed here
    - PDS (0x14): palette entries [index, Y, Cr, Cb, Alpha]
    - ODS (0x15): object bitmap, RLE encoded, possibly fragmented

A display set without objects clears the screen; its time ends the
subtitle shown before it.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple

import numpy as np

from .base import ParseResult, SubtitleImage, SubtitleImageParser

logger = logging.getLogger(__name__)

PALETTE_SEGMENT = 0x14
OBJECT_SEGMENT = 0x15
COMPOSITION_SEGMENT = 0x16
WINDOW_SEGMENT = 0x17
END_SEGMENT = 0x80

# Used when the last subtitle is never cleared
DEFAULT_DURATION_MS = 3000
PALETTE_SIZE = 256


@dataclass
class PaletteEntry:
    index: int
    y: int   # Luma
    cr: int  # Red chroma
    cb: int  # Blue chroma
    alpha: int


@dataclass
class ObjectData:
    """Object Definition Segment, fragments joined."""
    object_id: int
    width: int
    height: int
    rle: bytes
    complete: bool


@dataclass
class CompositionObject:
    object_id: int
    is_forced: bool
    x: int
    y: int


@dataclass
class DisplaySet:
    """One PCS with the palette and objects in effect at its END segment."""
    start_ms: int
    width: int
    height: int
    objects: List[CompositionObject] = field(default_factory=list)
    palette: Dict[int, PaletteEntry] = field(default_factory=dict)
    bitmaps: Dict[int, ObjectData] = field(default_factory=dict)


def clamp(value: float, min_val: int = 0, max_val: int = 255) -> int:
    return int(max(min_val, min(max_val, value)))


def ycbcr_to_rgb(y: int, cr: int, cb: int, use_bt709: bool = False) -> Tuple[int, int, int]:
    """
    Convert limited range YCbCr to RGB.

    BT.601 (SD):
        r = (y - 16) * 1.164 + (cr - 128) * 1.596
        g = (y - 16) * 1.164 - (cr - 128) * 0.813 - (cb - 128) * 0.392
        b = (y - 16) * 1.164 + (cb - 128) * 2.017
    BT.709 (HD):
        r = (y - 16) * 1.164 + (cr - 128) * 1.793
        g = (y - 16) * 1.164 - (cr - 128) * 0.533 - (cb - 128) * 0.213
        b = (y - 16) * 1.164 + (cb - 128) * 2.112
    """
    c = y - 16
    d = cb - 128
    e = cr - 128
    if use_bt709:
        r = c * 1.164 + e * 1.793
        g = c * 1.164 - e * 0.533 - d * 0.213
        b = c * 1.164 + d * 2.112
    else:
        r = c * 1.164 + e * 1.596
        g = c * 1.164 - e * 0.813 - d * 0.392
        b = c * 1.164 + d * 2.017
    return (clamp(r), clamp(g), clamp(b))


class PgsParser(SubtitleImageParser):
    """Parser for PGS (.sup) subtitle files."""

    def __init__(self, use_bt709: bool = False):
        self.use_bt709 = use_bt709

    def can_parse(self, file_path: Path) -> bool:
        return Path(file_path).suffix.lower() == '.sup'

    def parse(self, file_path: Path) -> ParseResult:
        """
        Parse a SUP file and extract subtitle images.

        Returns:
            ParseResult; display sets that cannot be decoded are skipped
            with a warning
        """
        result = ParseResult()
        file_path = Path(file_path)
        if not file_path.exists():
            result.errors.append(f"SUP file not found: {file_path}")
            return result

        try:
            with open(file_path, 'rb') as f:
                display_sets = read_display_sets(f)
        except (OSError, ValueError) as e:
            result.errors.append(f"Failed to parse PGS: {e}")
            return result

        shown = [(i, ds) for i, ds in enumerate(display_sets) if ds.objects]
        result.format_info = {
            "format": "PGS",
            "frame_size": (display_sets[0].width, display_sets[0].height) if display_sets else None,
            "subtitle_count": len(shown),
        }
        if not shown:
            result.warnings.append("No subtitle found in SUP file")
            return result

        for position, ds in shown:
            if position + 1 < len(display_sets):
                end_ms = display_sets[position + 1].start_ms
            else:
                end_ms = ds.start_ms + DEFAULT_DURATION_MS
            index = len(result.subtitles)
            try:
                subtitle = self._build_subtitle(index, ds, end_ms)
            except (ValueError, IndexError) as e:
                message = (
                    f"unable to read subtitle {index}: {e}. "
                    "(This can usually be safely ignored.)"
                )
                logger.warning(message)
                result.warnings.append(message)
                continue
            result.subtitles.append(subtitle)

        return result

    def _build_subtitle(self, index: int, ds: DisplaySet, end_ms: int) -> SubtitleImage:
        placed = []
        for obj in ds.objects:
            bitmap = ds.bitmaps.get(obj.object_id)
            if bitmap is None or not bitmap.complete:
                raise ValueError(f"object {obj.object_id} has no complete bitmap")
            if bitmap.width == 0 or bitmap.height == 0:
                raise ValueError(f"object {obj.object_id} is empty")
            placed.append((obj, decode_rle(bitmap.rle, bitmap.width, bitmap.height)))

        # All objects of the composition on one canvas
        left = min(obj.x for obj, _ in placed)
        top = min(obj.y for obj, _ in placed)
        right = max(obj.x + img.shape[1] for obj, img in placed)
        bottom = max(obj.y + img.shape[0] for obj, img in placed)
        indexed = np.zeros((bottom - top, right - left), dtype=np.uint8)
        for obj, img in placed:
            y, x = obj.y - top, obj.x - left
            region = indexed[y : y + img.shape[0], x : x + img.shape[1]]
            np.copyto(region, img, where=img != 0)

        colors = [(0, 0, 0)] * PALETTE_SIZE
        alphas = [0] * PALETTE_SIZE
        lumas = [0] * PALETTE_SIZE
        for entry in ds.palette.values():
            colors[entry.index] = ycbcr_to_rgb(entry.y, entry.cr, entry.cb, self.use_bt709)
            alphas[entry.index] = entry.alpha
            lumas[entry.index] = entry.y

        return SubtitleImage(
            index=index,
            start_ms=ds.start_ms,
            end_ms=end_ms,
            indexed=indexed,
            colors=colors,
            alphas=alphas,
            x=left,
            y=top,
            frame_width=ds.width,
            frame_height=ds.height,
            is_forced=any(obj.is_forced for obj in ds.objects),
            alpha_max=255,
            palette_luma=lumas,
        )


def read_segments(stream: BinaryIO):
    """
    Yield (type, pts_ms, data) for every segment of ``stream``.

    A truncated last segment ends the stream.

    Raises:
        ValueError: a segment header does not start with "PG"
    """
    offset = 0
    while True:
        header = stream.read(13)
        if len(header) < 13:
            return
        if header[0:2] != b"PG":
            raise ValueError(f"invalid segment header at offset {offset}")
        pts = struct.unpack('>I', header[2:6])[0]
        segment_type = header[10]
        size = struct.unpack('>H', header[11:13])[0]
        data = stream.read(size)
        if len(data) < size:
            return
        offset += 13 + size
        yield segment_type, pts // 90, data


def read_display_sets(stream: BinaryIO) -> List[DisplaySet]:
    """Group the segments of ``stream`` into display sets."""
    display_sets: List[DisplaySet] = []
    palettes: Dict[int, Dict[int, PaletteEntry]] = {}
    objects: Dict[int, ObjectData] = {}
    current: Optional[DisplaySet] = None
    palette_id = 0

    for segment_type, pts_ms, data in read_segments(stream):
        if segment_type == COMPOSITION_SEGMENT:
            current, palette_id = parse_composition(data, pts_ms)
        elif segment_type == PALETTE_SEGMENT:
            pid, entries = parse_palette(data)
            palettes.setdefault(pid, {}).update(entries)
        elif segment_type == OBJECT_SEGMENT:
            parse_object(data, objects)
        elif segment_type == END_SEGMENT and current is not None:
            current.palette = dict(palettes.get(palette_id, {}))
            current.bitmaps = {
                obj.object_id: objects[obj.object_id]
                for obj in current.objects
                if obj.object_id in objects
            }
            display_sets.append(current)
            current = None
        # WDS and unknown segments carry nothing needed

    return display_sets


def parse_composition(data: bytes, pts_ms: int) -> Tuple[DisplaySet, int]:
    """
    Parse a Picture Composition Segment.

    Structure:
        - bytes 0-1: width, bytes 2-3: height
        - byte 4: frame rate, bytes 5-6: composition number
        - byte 7: composition state, byte 8: palette update flag
        - byte 9: palette id, byte 10: number of objects
        - per object: id (2), window id (1), flags (1), x (2), y (2),
          then 8 bytes of cropping when flag 0x80 is set; flag 0x40 is forced

    Returns:
        Tuple of (display set, palette id)
    """
    if len(data) < 11:
        raise ValueError("truncated composition segment")
    width, height = struct.unpack('>HH', data[0:4])
    palette_id = data[9]
    count = data[10]

    ds = DisplaySet(start_ms=pts_ms, width=width, height=height)
    offset = 11
    for _ in range(count):
        if offset + 8 > len(data):
            break
        object_id = struct.unpack('>H', data[offset : offset + 2])[0]
        flags = data[offset + 3]
        x, y = struct.unpack('>HH', data[offset + 4 : offset + 8])
        ds.objects.append(CompositionObject(object_id, bool(flags & 0x40), x, y))
        offset += 16 if flags & 0x80 else 8
    return ds, palette_id


def parse_palette(data: bytes) -> Tuple[int, Dict[int, PaletteEntry]]:
    """Parse a Palette Definition Segment: id, version, then 5-byte entries."""
    if len(data) < 2:
        raise ValueError("truncated palette segment")
    entries = {}
    for offset in range(2, len(data) - 4, 5):
        index, y, cr, cb, alpha = data[offset : offset + 5]
        entries[index] = PaletteEntry(index, y, cr, cb, alpha)
    return data[0], entries


def parse_object(data: bytes, objects: Dict[int, ObjectData]):
    """
    Parse an Object Definition Segment into ``objects``.

    Structure:
        - bytes 0-1: object id, byte 2: version
        - byte 3: sequence flags, 0x80 first fragment, 0x40 last fragment
        - first fragment: data length (3), width (2), height (2), RLE data
        - other fragments: RLE data
    """
    if len(data) < 4:
        raise ValueError("truncated object segment")
    object_id = struct.unpack('>H', data[0:2])[0]
    sequence = data[3]
    is_last = bool(sequence & 0x40)

    if sequence & 0x80:
        if len(data) < 11:
            raise ValueError("truncated object segment")
        width, height = struct.unpack('>HH', data[7:11])
        objects[object_id] = ObjectData(object_id, width, height, bytes(data[11:]), is_last)
    elif object_id in objects:
        existing = objects[object_id]
        existing.rle += bytes(data[4:])
        existing.complete = is_last


def decode_rle(buffer: bytes, width: int, height: int) -> np.ndarray:
    """
    Decode a PGS RLE bitmap into palette indices.

    RLE encoding patterns:
        - 0xCC (non-zero): one pixel of color CC
        - 0x00 0x00: end of line
        - 0x00 0x0N..0x3N: N pixels of color 0
        - 0x00 0x4N 0xNN: long run of color 0
        - 0x00 0x8N 0xCC: N pixels of color CC
        - 0x00 0xCN 0xNN 0xCC: long run of color CC
    """
    out = np.zeros((height, width), dtype=np.uint8)
    x = y = 0
    i = 0
    size = len(buffer)
    while i < size and y < height:
        b = buffer[i]
        i += 1
        if b != 0:
            run, color = 1, b
        else:
            flag = buffer[i]
            i += 1
            if flag == 0:
                x = 0
                y += 1
                continue
            run = flag & 0x3F
            if flag & 0x40:
                run = (run << 8) | buffer[i]
                i += 1
            color = 0
            if flag & 0x80:
                color = buffer[i]
                i += 1
        if x < width:
            out[y, x : min(x + run, width)] = color
        x += run
    return out
