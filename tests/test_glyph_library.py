# tests/test_glyph_library.py
import io

import numpy as np
import pytest

from subtile_ocr.errors import (
    EmptyGlyphImage,
    GlyphImageSizeMismatch,
    GlyphRonDeserialization,
    GlyphRonSerialization,
    InvariantError,
    NoFileToLoad,
    PixelDeserializeInvalidValue,
    PixelSerializeInvalidValue,
)
from subtile_ocr.glyphs import Glyph, GlyphLibrary
from subtile_ocr.glyphs.library import LIBRARY_FILENAME
from tests.fakes import blank, draw


def _glyph(rows, orig_y=(0, 0), characters=None):
    image = np.array([[0 if c == "8" else 255 for c in row] for row in rows], dtype=np.uint8)
    return Glyph(image, orig_y, characters)


def _round_trip(library, compact=False):
    buffer = io.StringIO()
    library.save(buffer, compact=compact)
    loaded = GlyphLibrary()
    loaded.load(io.StringIO(buffer.getvalue()))
    return buffer.getvalue(), loaded


def test_find_exact_returns_first_match():
    library = GlyphLibrary()
    library.add_glyph(_glyph(["8", "8"], characters="l"))
    library.add_glyph(_glyph(["8", "8"], characters="I"))
    assert library.find_exact(_glyph(["8", "8"]).image) == "l"
    assert library.find_exact(_glyph(["88"]).image) is None


def test_find_exact_on_unmapped_glyph_is_none():
    library = GlyphLibrary([_glyph(["8 "])])
    assert library.find_exact(_glyph(["8 "]).image) is None


def test_find_closest_ranks_by_agreement():
    library = GlyphLibrary([
        _glyph(["888", "   "], characters="far"),
        _glyph(["888", "8 8"], characters="near"),
        _glyph(["8888"], characters="other size"),
    ])
    ranked = library.find_closest(_glyph(["888", "888"]).image)
    assert [(score, glyph.characters) for score, glyph in ranked] == [(5, "near"), (3, "far")]


def test_find_closest_ties_keep_library_order():
    library = GlyphLibrary([
        _glyph(["8 "], characters="first"),
        _glyph([" 8"], characters="second"),
    ])
    ranked = library.find_closest(_glyph(["  "]).image)
    assert [glyph.characters for _, glyph in ranked] == ["first", "second"]


def test_round_trip_keeps_glyphs_and_order():
    library = GlyphLibrary([
        _glyph(["8 8", " 8 "], orig_y=(-3, 1), characters="é"),
        _glyph(["8"], orig_y=(0, 0), characters=None),
        _glyph(["88", "88"], orig_y=(2, 0), characters="ff"),
    ])
    text, loaded = _round_trip(library)
    assert text.endswith("]\n")
    assert '"8 8",' in text
    assert "orig_y: (-3, 1)" in text
    assert list(loaded) == list(library)


def test_compact_round_trip():
    library = GlyphLibrary([_glyph(["8 ", " 8"], orig_y=(1, -2), characters="x")])
    text, loaded = _round_trip(library, compact=True)
    assert "\n" not in text
    assert 'p:"8  8"' in text
    assert "s:(2,2)" in text
    assert loaded.glyphs == library.glyphs


def test_reads_both_image_layouts():
    text = """[
        (img: ["8"], orig_y: (0, 0), characters: Some("i")),
        (img: (s: (1, 1), p: " "), orig_y: (0, 0), characters: None),
    ]"""
    library = GlyphLibrary()
    library.load(io.StringIO(text))
    assert [g.characters for g in library] == ["i", None]
    assert library.glyphs[1].image.tolist() == [[255]]


def test_load_requires_empty_library():
    library = GlyphLibrary([_glyph(["8"])])
    with pytest.raises(InvariantError):
        library.load(io.StringIO("[]"))


@pytest.mark.parametrize("text, error", [
    ('[(img: ["x"], orig_y: (0, 0), characters: None)]', PixelDeserializeInvalidValue),
    ('[(img: ["88", "8"], orig_y: (0, 0), characters: None)]', GlyphImageSizeMismatch),
    ('[(img: (s: (2, 2), p: "888"), orig_y: (0, 0), characters: None)]', GlyphImageSizeMismatch),
    ('[(img: [], orig_y: (0, 0), characters: None)]', EmptyGlyphImage),
    ('[(img: ["8"], orig_y: (0, 0))]', GlyphRonDeserialization),
    ('[(img: ["8"], orig_y: (0, 70000), characters: None)]', GlyphRonDeserialization),
    ('[(img: ["8"], orig_y: (0, 0), characters: Some(3))]', GlyphRonDeserialization),
    ('(img: ["8"])', GlyphRonDeserialization),
    ("[(img: [", GlyphRonDeserialization),
])
def test_malformed_libraries(text, error):
    library = GlyphLibrary()
    with pytest.raises(error):
        library.load(io.StringIO(text))
    assert len(library) == 0


def test_bad_record_adds_nothing():
    text = '[(img: ["8"], orig_y: (0, 0), characters: None), (img: ["?"], orig_y: (0, 0), characters: None)]'
    library = GlyphLibrary()
    with pytest.raises(PixelDeserializeInvalidValue):
        library.load(io.StringIO(text))
    assert len(library) == 0


def test_gray_glyph_cannot_be_saved():
    image = blank(2, 1)
    image[0, 0] = 7
    library = GlyphLibrary([Glyph(image, (0, 0), "?")])
    with pytest.raises(PixelSerializeInvalidValue):
        library.save(io.StringIO())


def test_orig_y_outside_i16_cannot_be_saved():
    library = GlyphLibrary([_glyph(["8"], orig_y=(0, 40000))])
    with pytest.raises(GlyphRonSerialization):
        library.save(io.StringIO())


def test_load_from_missing_directory(library_dir):
    with pytest.raises(NoFileToLoad) as exc_info:
        GlyphLibrary().load_from_path(library_dir)
    assert exc_info.value.path == library_dir / LIBRARY_FILENAME


def test_save_and_load_from_path(library_dir):
    library = GlyphLibrary([_glyph(["8", "8"], orig_y=(-1, 0), characters="!")])
    library.save_to_path(library_dir)
    assert (library_dir / LIBRARY_FILENAME).is_file()

    loaded = GlyphLibrary()
    loaded.load_from_path(library_dir)
    assert loaded.glyphs == library.glyphs


def test_glyph_equality_and_size():
    image = draw(blank(3, 2), 0, 0, 0, 1)
    glyph = Glyph(image, (0, 1), "l")
    assert glyph.size == (3, 2)
    assert glyph == Glyph(image.copy(), (0, 1), "l")
    assert glyph != Glyph(image, (0, 1), "I")
    assert glyph != Glyph(blank(2, 3), (0, 1), "l")


def test_one_pixel_difference_beats_ten():
    query = draw(blank(6, 4), 1, 0, 4, 3)
    one_off = query.copy()
    one_off[0, 1] = 255
    ten_off = query.copy()
    ten_off[:, 1:3] = 255
    ten_off[0:2, 0] = 0
    assert np.count_nonzero(ten_off != query) == 10
    library = GlyphLibrary([Glyph(ten_off, (0, 0), "ten"), Glyph(one_off, (0, 0), "one")])
    ranked = library.find_closest(query)
    assert [glyph.characters for _, glyph in ranked] == ["one", "ten"]
    assert [score for score, _ in ranked] == [23, 14]


def test_invalid_pixel_reports_its_character():
    library = GlyphLibrary()
    with pytest.raises(PixelDeserializeInvalidValue) as exc_info:
        library.load(io.StringIO('[(img: ["8x"], orig_y: (0, 0), characters: None)]'))
    assert exc_info.value.char == "x"


def test_deeply_nested_file_is_a_deserialization_error():
    library = GlyphLibrary()
    with pytest.raises(GlyphRonDeserialization):
        library.load(io.StringIO("[" * 5000))
    assert len(library) == 0


def test_failed_save_keeps_existing_library_file(library_dir):
    GlyphLibrary([_glyph(["8"], characters="i")]).save_to_path(library_dir)
    path = library_dir / LIBRARY_FILENAME
    before = path.read_text(encoding="utf-8")

    broken = GlyphLibrary([_glyph(["8"], characters="i"), _glyph(["88"], orig_y=(0, 40000))])
    with pytest.raises(GlyphRonSerialization):
        broken.save_to_path(library_dir)
    assert path.read_text(encoding="utf-8") == before


def test_failed_save_creates_no_file(library_dir):
    library = GlyphLibrary([_glyph(["8"], orig_y=(-40000, 0))])
    with pytest.raises(GlyphRonSerialization):
        library.save_to_path(library_dir)
    assert not (library_dir / LIBRARY_FILENAME).exists()
