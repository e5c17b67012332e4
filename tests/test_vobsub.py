# tests/test_vobsub.py
import io
import logging

import numpy as np
import pytest

from subtile_ocr.parsers import PgsParser, SubtitleImageParser, VobSubParser
from subtile_ocr.parsers.vobsub import (
    DEFAULT_DURATION_MS,
    decode_rle_field,
    decode_rle_image,
    parse_control_sequence,
    read_spu_packet,
)
from tests.fakes import bar_slots, build_spu, encode_rle_field, wrap_pes, write_vobsub


def test_rle_code_lengths():
    # 1 pixel (nncc), 5 pixels (00nnnncc), 20 pixels (0000nnnnnncc), 70 pixels
    row = [1] + [2] * 5 + [3] * 20 + [0] * 70
    data = encode_rle_field([row])
    out = np.zeros((1, len(row)), dtype=np.uint8)
    decode_rle_field(data, 0, out, 0)
    assert out[0].tolist() == row


def test_rle_zero_run_fills_row():
    # run 0 of slot 2 for row 0, run 0 of slot 1 for row 2
    data = bytes([0x00, 0x02, 0x00, 0x01])
    out = np.zeros((3, 6), dtype=np.uint8)
    decode_rle_field(data, 0, out, 0)
    assert out[0].tolist() == [2] * 6
    assert out[1].tolist() == [0] * 6
    assert out[2].tolist() == [1] * 6


def test_rle_truncated_data():
    out = np.zeros((2, 8), dtype=np.uint8)
    with pytest.raises(ValueError):
        decode_rle_field(bytes([0x54]), 0, out, 0)


def test_fields_are_interlaced():
    indexed = np.array([[1, 1, 0], [2, 2, 2], [0, 1, 0], [3, 0, 3]], dtype=np.uint8)
    top = encode_rle_field([indexed[0], indexed[2]])
    bottom = encode_rle_field([indexed[1], indexed[3]])
    data = b"\x00\x00\x00\x00" + top + bottom
    decoded = decode_rle_image(data, 4, 4 + len(top), 3, 4)
    assert np.array_equal(decoded, indexed)


def test_control_sequence():
    spu = build_spu(bar_slots(width=10, height=6), x=16, y=300,
                    palette_indices=(0, 5, 2, 9), alphas=(0, 15, 8, 3), forced=True)
    ctrl = parse_control_sequence(spu, int.from_bytes(spu[2:4], "big"))
    assert (ctrl.x1, ctrl.y1, ctrl.x2, ctrl.y2) == (16, 300, 25, 305)
    assert (ctrl.width, ctrl.height) == (10, 6)
    assert ctrl.color_indices == [0, 5, 2, 9]
    assert ctrl.alpha_values == [0, 15, 8, 3]
    assert ctrl.forced
    assert ctrl.duration_ms == 512


def test_control_sequence_without_stop():
    spu = build_spu(bar_slots(), duration_ticks=None)
    ctrl = parse_control_sequence(spu, int.from_bytes(spu[2:4], "big"))
    assert ctrl.duration_ms == 0
    assert not ctrl.forced


def test_unknown_control_command():
    data = bytes([0, 0, 0, 0, 0x07, 0xFF])
    with pytest.raises(ValueError, match="0x07"):
        parse_control_sequence(data, 0)


def test_read_spu_packet_from_pes():
    spu = build_spu(bar_slots())
    stream = io.BytesIO(wrap_pes(spu) + wrap_pes(build_spu(bar_slots(bars={5: 2}))))
    assert read_spu_packet(stream) == spu


def test_read_spu_packet_spanning_two_pes():
    spu = build_spu(bar_slots(width=40, height=30, bars={5: 3, 20: 4}))
    half = len(spu) // 2
    first = wrap_pes(spu[:half])
    second = wrap_pes(spu[half:])
    assert read_spu_packet(io.BytesIO(first + second)) == spu


def test_parse_vobsub(tmp_path):
    first = bar_slots(width=12, height=8, bars={3: 2})
    second = bar_slots(width=9, height=6, bars={2: 1, 6: 1})
    idx = write_vobsub(tmp_path, [
        (1000, build_spu(first, x=120, y=410)),
        (62500, build_spu(second, forced=True)),
    ])

    result = VobSubParser().parse(idx)

    assert result.success
    assert result.format_info["frame_size"] == (720, 480)
    assert result.format_info["subtitle_count"] == 2
    a, b = result.subtitles
    assert np.array_equal(a.indexed, first)
    assert np.array_equal(b.indexed, second)
    assert (a.index, a.start_ms, a.end_ms) == (0, 1000, 1512)
    assert (b.start_ms, b.end_ms) == (62500, 63012)
    assert (a.x, a.y) == (120, 410)
    assert a.colors == [(0, 0, 0), (255, 255, 255), (0, 0, 0), (128, 128, 128)]
    assert a.alphas == [0, 15, 15, 15]
    assert not a.is_forced and b.is_forced
    assert a.start_time == "00:00:01.000"


def test_parse_from_sub_path(tmp_path):
    idx = write_vobsub(tmp_path, [(0, build_spu(bar_slots()))])
    assert len(VobSubParser().parse(idx.with_suffix(".sub")).subtitles) == 1


def test_end_time_fallbacks(tmp_path):
    idx = write_vobsub(tmp_path, [
        (1000, build_spu(bar_slots(), duration_ticks=None)),
        (3000, build_spu(bar_slots(), duration_ticks=None)),
    ])
    a, b = VobSubParser().parse(idx).subtitles
    assert a.end_ms == 3000
    assert b.end_ms == 3000 + DEFAULT_DURATION_MS


def test_unreadable_entry_is_skipped(tmp_path, caplog):
    idx = write_vobsub(
        tmp_path,
        [(1000, build_spu(bar_slots()))],
        extra_entries=[(2000, 0x7FFFFF)],
    )
    with caplog.at_level(logging.WARNING):
        result = VobSubParser().parse(idx)
    assert result.success
    assert len(result.subtitles) == 1
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("unable to read subtitle 1")
    assert "safely ignored" in caplog.text


def test_missing_sub_file(tmp_path):
    idx = write_vobsub(tmp_path, [(0, build_spu(bar_slots()))])
    idx.with_suffix(".sub").unlink()
    result = VobSubParser().parse(idx)
    assert not result.success
    assert "SUB file not found" in result.errors[0]


def test_empty_index(tmp_path):
    idx = write_vobsub(tmp_path, [])
    result = VobSubParser().parse(idx)
    assert result.success
    assert result.subtitles == []
    assert result.warnings


def test_idx_palette_is_read(tmp_path):
    palette = ["000000", "ff0000", "00ff00", "0000ff"] + ["ffffff"] * 12
    idx = write_vobsub(tmp_path, [(0, build_spu(bar_slots(), palette_indices=(0, 1, 2, 3)))],
                       palette=palette)
    sub = VobSubParser().parse(idx).subtitles[0]
    assert sub.colors == [(0, 0, 0), (255, 0, 0), (0, 255, 0), (0, 0, 255)]


def test_detect_parser(tmp_path):
    assert isinstance(SubtitleImageParser.detect_parser(tmp_path / "a.idx"), VobSubParser)
    assert isinstance(SubtitleImageParser.detect_parser(tmp_path / "a.SUB"), VobSubParser)
    assert isinstance(SubtitleImageParser.detect_parser(tmp_path / "a.sup"), PgsParser)
    assert SubtitleImageParser.detect_parser(tmp_path / "a.ass") is None
