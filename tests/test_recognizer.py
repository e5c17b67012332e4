# tests/test_recognizer.py
import io
import logging

import numpy as np
import pytest

from subtile_ocr.errors import StopGlyphProcess
from subtile_ocr.glyphs import (
    Glyph,
    GlyphLibrary,
    GlyphResult,
    MappingAsker,
    RejectAsker,
    TerminalAsker,
    recognize,
    split_image,
)
from tests.fakes import blank, draw


def _block_image(missing_corners=0):
    """4x5 block on a 12x10 canvas, with some corners erased."""
    image = draw(blank(12, 10), 3, 2, 6, 6)
    for x, y in [(3, 2), (6, 2), (3, 6), (6, 6)][:missing_corners]:
        image[y, x] = 255
    return image


def test_single_i_is_learned_once(i_image):
    library = GlyphLibrary()
    asker = MappingAsker(["I"])

    assert recognize(split_image(i_image), library, asker) == "I\n"
    assert len(asker.asked) == 1
    assert len(library) == 1
    glyph = library.glyphs[0]
    assert glyph.characters == "I"
    assert glyph.orig_y == (0, 0)
    assert glyph.image.shape == (6, 1)

    # Known now: the asker is not consulted again
    assert recognize(split_image(i_image), library, RejectAsker()) == "I\n"
    assert len(library) == 1


def test_learned_glyph_is_writable_copy(i_image):
    library = GlyphLibrary()
    recognize(split_image(i_image), library, MappingAsker(["I"]))
    assert library.glyphs[0].image.flags.writeable


def test_abort_leaves_library_empty(i_image):
    library = GlyphLibrary()
    with pytest.raises(StopGlyphProcess, match="Stop Glyph processing"):
        recognize(split_image(i_image), library, RejectAsker())
    assert len(library) == 0


def test_glyphs_learned_before_abort_are_kept(word_image):
    library = GlyphLibrary()
    asker = MappingAsker(["l"])
    with pytest.raises(StopGlyphProcess):
        recognize(split_image(word_image), library, asker)
    assert len(asker.asked) == 2
    assert [g.characters for g in library] == ["l"]


def test_orig_y_is_relative_to_baseline(word_image):
    library = GlyphLibrary()
    text = recognize(split_image(word_image), library, MappingAsker(["l", "í", "o"]))
    assert text == "lío\n"
    assert [g.orig_y for g in library] == [(-4, 0), (-3, 0), (0, 0)]


def test_identical_pieces_are_asked_once(two_line_image):
    library = GlyphLibrary()
    asker = MappingAsker(["l", "o"])
    assert recognize(split_image(two_line_image), library, asker) == "ll\no\n"
    assert len(asker.asked) == 2
    assert [g.characters for g in library] == ["l", "o"]


def test_close_glyph_is_accepted_at_threshold():
    library = GlyphLibrary([Glyph(np.zeros((5, 4), dtype=np.uint8), (0, 0), "X")])
    # 19 of 20 pixels agree
    assert recognize(split_image(_block_image(1)), library, RejectAsker()) == "X\n"
    assert len(library) == 1


def test_glyph_below_threshold_is_asked():
    library = GlyphLibrary([Glyph(np.zeros((5, 4), dtype=np.uint8), (0, 0), "X")])
    asker = MappingAsker(["O"])
    # 18 of 20 pixels agree
    assert recognize(split_image(_block_image(2)), library, asker) == "O\n"
    assert len(asker.asked) == 1
    assert len(library) == 2


def test_unmapped_glyph_never_answers():
    image = _block_image()
    known = split_image(image).lines[0].pieces[0].image.copy()
    library = GlyphLibrary([Glyph(known, (0, 0), None)])
    asker = MappingAsker(["#"])
    assert recognize(split_image(image), library, asker) == "#\n"
    assert len(asker.asked) == 1


def test_proximity_scores_are_logged(caplog):
    library = GlyphLibrary([Glyph(np.zeros((5, 4), dtype=np.uint8), (0, 0), "X")])
    with caplog.at_level(logging.DEBUG, logger="subtile_ocr.glyphs.recognizer"):
        recognize(split_image(_block_image(1)), library, RejectAsker())
    assert "'X' : 19/20 => 0.950" in caplog.text


def test_glyph_result():
    assert GlyphResult.abort().is_abort
    result = GlyphResult.chars("ab")
    assert not result.is_abort
    assert result.characters == "ab"
    with pytest.raises(ValueError):
        GlyphResult.chars("")


def test_terminal_asker_draws_piece_and_reads_line(i_image):
    piece = split_image(i_image).lines[0].pieces[0]
    stdout = io.StringIO()
    asker = TerminalAsker(stdin=io.StringIO("\nI\n"), stdout=stdout)

    result = asker.ask_char_for_glyph(piece)

    assert result.characters == "I"
    output = stdout.getvalue()
    assert output.startswith("+-+\n" + "|8|\n" * 6 + "+-+\n(9, 2) -> (9, 7)\n")
    # empty answer asks again
    assert output.count("Characters for this glyph") == 2


def test_terminal_asker_end_of_input_aborts(i_image):
    piece = split_image(i_image).lines[0].pieces[0]
    asker = TerminalAsker(stdin=io.StringIO(""), stdout=io.StringIO())
    assert asker.ask_char_for_glyph(piece).is_abort


def test_terminal_asker_keeps_inner_spaces(i_image):
    piece = split_image(i_image).lines[0].pieces[0]
    asker = TerminalAsker(stdin=io.StringIO(" a \r\n"), stdout=io.StringIO())
    assert asker.ask_char_for_glyph(piece).characters == " a "


def test_mapping_asker_runs_out(i_image):
    piece = split_image(i_image).lines[0].pieces[0]
    asker = MappingAsker(["a"])
    assert asker.ask_char_for_glyph(piece).characters == "a"
    assert asker.ask_char_for_glyph(piece).is_abort
    assert asker.asked == [piece, piece]
