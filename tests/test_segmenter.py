# tests/test_segmenter.py
import numpy as np
import pytest

from subtile_ocr.errors import ImageWithGrayIsInvalid, InvariantError, NoCharactersFound
from subtile_ocr.glyphs.pieces import Line, Piece
from subtile_ocr.glyphs.segmenter import ImageCharacterSplitter, organize_pieces_in_lines, split_image
from subtile_ocr.models.area import Area
from tests.fakes import blank, draw


def _areas(pieces):
    return [[piece.area for piece in line.pieces] for line in pieces]


def test_area_inclusive_bounds():
    area = Area.from_points([(4, 7)])
    assert (area.width, area.height) == (1, 1)
    area = Area(2, 3, 5, 9)
    assert (area.width, area.height) == (4, 7)
    assert area.contains_point_y(3) and area.contains_point_y(9)
    assert not area.contains_point_y(10)


def test_area_overlaps_and_union():
    a = Area(0, 0, 4, 4)
    b = Area(4, 6, 8, 8)
    assert a.intersects_x(b)
    assert not a.intersects_y(b)
    assert Area(0, 0, 10, 1).contains_x(Area(3, 5, 7, 6))
    assert not Area(3, 0, 10, 1).contains_x(Area(2, 0, 7, 1))
    assert a.union(b) == Area(0, 0, 8, 8)


def test_single_i_is_one_line_one_piece(i_image):
    pieces = split_image(i_image)
    assert len(pieces) == 1
    line = pieces.lines[0]
    assert len(line.pieces) == 1
    piece = line.pieces[0]
    assert piece.area == Area(9, 2, 9, 7)
    assert piece.image.shape == (6, 1)
    assert np.all(piece.image == 0)
    assert line.baseline == (2, 7)


def test_diagonal_blobs_are_not_connected():
    image = blank(10, 10)
    draw(image, 2, 2, 3, 3)
    draw(image, 4, 4, 5, 5)
    pieces = split_image(image)
    # No vertical overlap, so each blob makes its own line
    assert _areas(pieces) == [[Area(2, 2, 3, 3)], [Area(4, 4, 5, 5)]]


def test_gray_pixel_is_rejected(i_image):
    i_image[5, 15] = 128
    with pytest.raises(ImageWithGrayIsInvalid) as exc_info:
        split_image(i_image)
    assert (exc_info.value.value, exc_info.value.x, exc_info.value.y) == (128, 15, 5)
    assert "not correctly prepared" in str(exc_info.value)


@pytest.mark.parametrize("value", [256, -1, 511])
def test_out_of_range_values_do_not_wrap(i_image, value):
    image = i_image.astype(np.int32)
    image[5, 15] = value
    with pytest.raises(ImageWithGrayIsInvalid) as exc_info:
        split_image(image)
    assert (exc_info.value.value, exc_info.value.x, exc_info.value.y) == (value, 15, 5)


def test_wider_dtype_with_two_colors_is_accepted(i_image):
    pieces = split_image(i_image.astype(np.int64))
    assert _areas(pieces) == [[Area(9, 2, 9, 7)]]


def test_gray_before_any_ink_is_rejected():
    image = blank(5, 5)
    image[0, 0] = 1
    draw(image, 2, 2, 2, 4)
    with pytest.raises(ImageWithGrayIsInvalid):
        split_image(image)


def test_image_without_ink():
    with pytest.raises(NoCharactersFound, match="No character found"):
        split_image(blank(8, 8))


def test_input_image_is_not_modified(i_image):
    original = i_image.copy()
    split_image(i_image)
    assert np.array_equal(i_image, original)


def test_rejects_color_images():
    with pytest.raises(ValueError):
        ImageCharacterSplitter(np.zeros((4, 4, 3), dtype=np.uint8))


def test_accent_is_merged_in_its_base(word_image):
    pieces = split_image(word_image)
    assert len(pieces) == 1
    line = pieces.lines[0]
    assert [piece.area for piece in line.pieces] == [
        Area(2, 1, 3, 12),
        Area(6, 2, 8, 12),
        Area(12, 5, 16, 12),
    ]
    accented = line.pieces[1].image
    assert accented.shape == (11, 3)
    # accent column, gap row, then the body
    assert list(accented[0]) == [255, 0, 255]
    assert list(accented[2]) == [255, 255, 255]
    assert np.all(accented[3:] == 0)
    assert line.baseline == (5, 12)


def test_lines_are_ordered_top_to_bottom(two_line_image):
    pieces = split_image(two_line_image)
    assert _areas(pieces) == [
        [Area(2, 2, 3, 8), Area(8, 2, 9, 8)],
        [Area(4, 14, 6, 20)],
    ]
    assert pieces.piece_count() == 3
    images = [[img.shape for img in line] for line in pieces.images()]
    assert images == [[(7, 2), (7, 2)], [(7, 3)]]


def test_segmentation_is_deterministic(word_image, two_line_image):
    for image in (word_image, two_line_image):
        first = split_image(image)
        second = split_image(image)
        assert _areas(first) == _areas(second)
        for line_a, line_b in zip(first, second):
            for piece_a, piece_b in zip(line_a.pieces, line_b.pieces):
                assert np.array_equal(piece_a.image, piece_b.image)


def test_baseline_lies_within_line(word_image, two_line_image, i_image):
    for image in (word_image, two_line_image, i_image):
        for line in split_image(image):
            top, bottom = line.baseline
            assert line.area.contains_point_y(top)
            assert line.area.contains_point_y(bottom)


def test_apostrophe_is_ignored_by_baseline():
    image = blank(12, 14)
    draw(image, 1, 1, 2, 12)   # l
    draw(image, 4, 1, 4, 3)    # '
    draw(image, 6, 5, 8, 12)   # o
    line = split_image(image).lines[0]
    assert len(line.pieces) == 3
    assert line.baseline == (5, 12)


def test_piece_cannot_be_extended_after_render():
    piece = Piece([(1, 1), (1, 2)])
    piece.render()
    with pytest.raises(InvariantError):
        piece.extend(Piece([(1, 0)]))
    with pytest.raises(InvariantError):
        piece.render()


def test_piece_image_requires_render():
    piece = Piece([(0, 0)])
    with pytest.raises(InvariantError):
        piece.image


def test_piece_extend_requires_x_overlap():
    piece = Piece([(1, 1)])
    with pytest.raises(InvariantError):
        piece.extend(Piece([(5, 1)]))
    piece.extend(Piece([(1, 4)]))
    assert piece.area == Area(1, 1, 1, 4)


def test_rendered_image_is_read_only(i_image):
    piece = split_image(i_image).lines[0].pieces[0]
    with pytest.raises(ValueError):
        piece.image[0, 0] = 255


def test_organize_pieces_in_lines_appends_to_first_overlap():
    lines = organize_pieces_in_lines([
        Piece([(0, 0), (0, 1), (0, 2)]),
        Piece([(3, 5)]),
        Piece([(6, 2), (6, 3), (6, 4), (6, 5)]),
    ])
    assert [len(line.pieces) for line in lines] == [2, 1]
    assert lines[0].area == Area(0, 0, 6, 5)


def test_baseline_without_body_piece_is_an_invariant_error():
    line = Line(Piece([(0, 0), (0, 1), (0, 2), (0, 3)]))
    line.area = Area(0, 0, 0, 20)
    with pytest.raises(InvariantError):
        line.establish_baseline()


def test_tall_piece_pulls_later_pieces_into_its_line():
    image = blank(12, 20)
    draw(image, 1, 1, 2, 4)
    draw(image, 9, 3, 10, 15)
    draw(image, 5, 12, 6, 14)
    pieces = split_image(image)
    assert _areas(pieces) == [[Area(1, 1, 2, 4), Area(5, 12, 6, 14), Area(9, 3, 10, 15)]]
