# subtile_ocr/parsers/vobsub.py
"""
VobSub (.sub/.idx) Parser

Extracts subtitle bitmaps from DVD VobSub files:
    - .idx: Text index with frame size, 16-color palette, timestamps and
            byte offsets into the .sub file
    - .sub: MPEG-2 program stream; subtitle packets (SPU) travel in
            private stream 1 (0xBD)

Each SPU holds a control sequence (display area, four palette slots with
their alpha, field offsets, stop display delay) and an interlaced bitmap of
2-bit palette slots, run-length encoded per field:

    Value      Bits   Format
    1-3        4      nncc               (half a byte)
    4-15       8      00nnnncc           (one byte)
    16-63     12      0000nnnnnncc       (one and a half byte)
    64-255    16      000000nnnnnnnncc   (two bytes)

A run length of 0 fills the rest of the row. Rows start on a byte boundary.
"""

import logging
import re
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import numpy as np

from .base import ParseResult, SubtitleImage, SubtitleImageParser

logger = logging.getLogger(__name__)

# Used when neither the SPU nor a following entry gives an end time
DEFAULT_DURATION_MS = 4000
MAX_SPU_DIMENSION = 2000


@dataclass
class IdxEntry:
    """Parsed entry from .idx file."""

    timestamp_ms: int
    file_position: int


@dataclass
class VobSubHeader:
    """Header information from .idx file."""

    size_x: int = 720
    size_y: int = 480
    palette: list = field(
        default_factory=lambda: [(i * 17, i * 17, i * 17) for i in range(16)]
    )
    language: str = "en"
    language_index: int = 0


@dataclass
class ControlSequence:
    """Display parameters read from an SPU control sequence."""

    x1: int = 0
    y1: int = 0
    x2: int = 0
    y2: int = 0
    color_indices: list = field(default_factory=lambda: [0, 1, 2, 3])
    alpha_values: list = field(default_factory=lambda: [0, 15, 15, 15])
    top_field_offset: int = 4
    bottom_field_offset: int = 4
    forced: bool = False
    duration_ms: int = 0

    @property
    def width(self) -> int:
        return self.x2 - self.x1 + 1

    @property
    def height(self) -> int:
        return self.y2 - self.y1 + 1


class VobSubParser(SubtitleImageParser):
    """Parser for VobSub (.sub/.idx) subtitle format."""

    def can_parse(self, file_path: Path) -> bool:
        suffix = file_path.suffix.lower()
        if suffix == ".idx":
            return file_path.with_suffix(".sub").exists()
        elif suffix == ".sub":
            return file_path.with_suffix(".idx").exists()
        return False

    def parse(self, file_path: Path) -> ParseResult:
        """
        Parse VobSub files and extract subtitle images.

        Args:
            file_path: Path to .idx or .sub file

        Returns:
            ParseResult; entries that cannot be decoded are skipped with a warning
        """
        result = ParseResult()
        file_path = Path(file_path)

        idx_path = file_path.with_suffix(".idx")
        sub_path = file_path.with_suffix(".sub")

        if not idx_path.exists():
            result.errors.append(f"IDX file not found: {idx_path}")
            return result
        if not sub_path.exists():
            result.errors.append(f"SUB file not found: {sub_path}")
            return result

        try:
            header, entries = self._parse_idx(idx_path)
            result.format_info = {
                "format": "VobSub",
                "frame_size": (header.size_x, header.size_y),
                "language": header.language,
                "subtitle_count": len(entries),
            }

            if not entries:
                result.warnings.append("No subtitle entries found in IDX file")
                return result

            with open(sub_path, "rb") as sub_file:
                for i, entry in enumerate(entries):
                    try:
                        subtitle = self._parse_subtitle(sub_file, entry, i, header, entries)
                    except (ValueError, IndexError, struct.error) as e:
                        message = (
                            f"unable to read subtitle {i}: {e}. "
                            "(This can usually be safely ignored.)"
                        )
                        logger.warning(message)
                        result.warnings.append(message)
                        continue
                    result.subtitles.append(subtitle)

        except OSError as e:
            result.errors.append(f"Failed to parse VobSub: {e}")

        return result

    def _parse_idx(self, idx_path: Path) -> tuple[VobSubHeader, list[IdxEntry]]:
        """
        Parse the .idx index file.

        Returns:
            Tuple of (header info, list of subtitle entries)
        """
        header = VobSubHeader()
        entries: list[IdxEntry] = []

        with open(idx_path, encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()

                if line.startswith("size:"):
                    match = re.match(r"size:\s*(\d+)x(\d+)", line)
                    if match:
                        header.size_x = int(match.group(1))
                        header.size_y = int(match.group(2))

                elif line.startswith("palette:"):
                    header.palette = _parse_palette(line[8:])

                elif line.startswith("id:"):
                    # id: en, index: 0
                    match = re.match(r"id:\s*(\w+),\s*index:\s*(\d+)", line)
                    if match:
                        header.language = match.group(1)
                        header.language_index = int(match.group(2))

                elif line.startswith("timestamp:"):
                    # timestamp: 00:00:01:234, filepos: 000000000
                    match = re.match(
                        r"timestamp:\s*(\d+):(\d+):(\d+):(\d+),\s*filepos:\s*([0-9a-fA-F]+)",
                        line,
                    )
                    if match:
                        hours, minutes, seconds, ms = (int(match.group(n)) for n in range(1, 5))
                        timestamp_ms = hours * 3600000 + minutes * 60000 + seconds * 1000 + ms
                        entries.append(IdxEntry(timestamp_ms, int(match.group(5), 16)))

        return header, entries

    def _parse_subtitle(
        self,
        sub_file: BinaryIO,
        entry: IdxEntry,
        index: int,
        header: VobSubHeader,
        all_entries: list[IdxEntry],
    ) -> SubtitleImage:
        sub_file.seek(entry.file_position)
        spu = read_spu_packet(sub_file)
        if len(spu) < 4:
            raise ValueError("no subtitle packet at file position")

        ctrl_offset = struct.unpack(">H", spu[2:4])[0]
        ctrl = parse_control_sequence(spu, ctrl_offset)
        if not (0 < ctrl.width <= MAX_SPU_DIMENSION and 0 < ctrl.height <= MAX_SPU_DIMENSION):
            raise ValueError(f"invalid display area {ctrl.width}x{ctrl.height}")

        indexed = decode_rle_image(
            spu, ctrl.top_field_offset, ctrl.bottom_field_offset, ctrl.width, ctrl.height
        )

        if ctrl.duration_ms > 0:
            end_ms = entry.timestamp_ms + ctrl.duration_ms
        elif index + 1 < len(all_entries):
            end_ms = all_entries[index + 1].timestamp_ms
            logger.debug(f"Subtitle {index}: no SPU duration, using next start time")
        else:
            end_ms = entry.timestamp_ms + DEFAULT_DURATION_MS
            logger.debug(f"Subtitle {index}: no SPU duration, using 4s default")

        palette = header.palette
        return SubtitleImage(
            index=index,
            start_ms=entry.timestamp_ms,
            end_ms=end_ms,
            indexed=indexed,
            colors=[palette[i] if i < len(palette) else (0, 0, 0) for i in ctrl.color_indices],
            alphas=list(ctrl.alpha_values),
            x=ctrl.x1,
            y=ctrl.y1,
            frame_width=header.size_x,
            frame_height=header.size_y,
            is_forced=ctrl.forced,
        )


def _parse_palette(text: str) -> list[tuple[int, int, int]]:
    """16 RGB colors from the comma separated hex values of the idx palette line."""
    palette = []
    for color in text.split(",")[:16]:
        color = color.strip()
        if not color:
            continue
        try:
            rgb = int(color, 16)
        except ValueError:
            palette.append((128, 128, 128))
            continue
        palette.append(((rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF))
    while len(palette) < 16:
        palette.append((128, 128, 128))
    return palette


def read_spu_packet(f: BinaryIO) -> bytes:
    """
    Collect the SPU payload starting at the current position of ``f``.

    Reads MPEG-2 pack headers and PES packets, keeping the payload of
    private stream 1 subtitle substreams (0x20-0x3F), until the size
    announced by the first two bytes of the SPU is reached.
    """
    data = bytearray()
    spu_size = None

    while spu_size is None or len(data) < spu_size:
        start_code = f.read(4)
        if len(start_code) < 4:
            break

        if start_code == b"\x00\x00\x01\xba":
            # MPEG-2 pack header, variable stuffing in the last byte
            pack_header = f.read(10)
            if len(pack_header) < 10:
                break
            stuffing = pack_header[9] & 0x07
            if stuffing:
                f.read(stuffing)
            continue

        if start_code[:3] != b"\x00\x00\x01":
            break

        stream_id = start_code[3]
        length_bytes = f.read(2)
        if len(length_bytes) < 2:
            break
        packet_length = struct.unpack(">H", length_bytes)[0]
        if packet_length == 0:
            break
        packet = f.read(packet_length)
        if len(packet) < packet_length:
            break

        if stream_id == 0xBD and len(packet) >= 3:
            payload_start = 3 + packet[2]
            if payload_start < len(packet) and 0x20 <= packet[payload_start] <= 0x3F:
                data.extend(packet[payload_start + 1 :])
                if spu_size is None and len(data) >= 2:
                    spu_size = struct.unpack(">H", data[0:2])[0]
        elif stream_id == 0xB9:
            # program end
            break

    return bytes(data[:spu_size] if spu_size else data)


def parse_control_sequence(data: bytes, offset: int) -> ControlSequence:
    """
    Parse the chain of SPU control sequences starting at ``offset``.

    Each sequence is:
        - 2 bytes: delay in 90KHz/1024 ticks
        - 2 bytes: offset of the next sequence (itself for the last one)
        - commands until 0xFF

    The delay of the sequence holding the stop display command (0x02) is
    the display duration.
    """
    ctrl = ControlSequence()
    seen = set()

    while offset not in seen and offset + 4 <= len(data):
        seen.add(offset)
        delay_ticks, next_ctrl = struct.unpack(">HH", data[offset : offset + 4])
        pos = offset + 4

        while pos < len(data):
            cmd = data[pos]
            pos += 1

            if cmd == 0x00:
                ctrl.forced = True
            elif cmd == 0x01:
                pass  # start display
            elif cmd == 0x02:
                ctrl.duration_ms = (delay_ticks * 1024) // 90
            elif cmd == 0x03:
                # nibbles of the two bytes are slots 3, 2, 1, 0
                b1, b2 = data[pos], data[pos + 1]
                ctrl.color_indices = [b2 & 0x0F, b2 >> 4, b1 & 0x0F, b1 >> 4]
                pos += 2
            elif cmd == 0x04:
                b1, b2 = data[pos], data[pos + 1]
                ctrl.alpha_values = [b2 & 0x0F, b2 >> 4, b1 & 0x0F, b1 >> 4]
                pos += 2
            elif cmd == 0x05:
                c = data[pos : pos + 6]
                if len(c) < 6:
                    raise ValueError("truncated coordinates command")
                ctrl.x1 = (c[0] << 4) | (c[1] >> 4)
                ctrl.x2 = ((c[1] & 0x0F) << 8) | c[2]
                ctrl.y1 = (c[3] << 4) | (c[4] >> 4)
                ctrl.y2 = ((c[4] & 0x0F) << 8) | c[5]
                pos += 6
            elif cmd == 0x06:
                ctrl.top_field_offset, ctrl.bottom_field_offset = struct.unpack(
                    ">HH", data[pos : pos + 4]
                )
                pos += 4
            elif cmd == 0xFF:
                break
            else:
                raise ValueError(f"unknown SPU control command 0x{cmd:02x}")

        offset = next_ctrl

    return ctrl


class _NibbleReader:
    def __init__(self, data: bytes, offset: int):
        self.data = data
        self.pos = offset * 2

    def next(self) -> int:
        byte_index = self.pos >> 1
        if byte_index >= len(self.data):
            raise ValueError("RLE data ends before the bitmap is complete")
        byte = self.data[byte_index]
        nibble = byte >> 4 if self.pos % 2 == 0 else byte & 0x0F
        self.pos += 1
        return nibble

    def align(self):
        self.pos += self.pos & 1


def decode_rle_field(data: bytes, offset: int, out: np.ndarray, first_row: int):
    """Decode one interlaced field into every other row of ``out``."""
    height, width = out.shape
    reader = _NibbleReader(data, offset)
    for y in range(first_row, height, 2):
        x = 0
        while x < width:
            code = reader.next()
            if code < 0x4:
                code = (code << 4) | reader.next()
                if code < 0x10:
                    code = (code << 4) | reader.next()
                    if code < 0x40:
                        code = (code << 4) | reader.next()
            run, slot = code >> 2, code & 0x03
            if run == 0:
                run = width - x
            run = min(run, width - x)
            out[y, x : x + run] = slot
            x += run
        reader.align()


def decode_rle_image(
    data: bytes, top_offset: int, bottom_offset: int, width: int, height: int
) -> np.ndarray:
    """Bitmap of palette slots: top field on even rows, bottom field on odd rows."""
    indexed = np.zeros((height, width), dtype=np.uint8)
    decode_rle_field(data, top_offset, indexed, 0)
    decode_rle_field(data, bottom_offset, indexed, 1)
    return indexed
