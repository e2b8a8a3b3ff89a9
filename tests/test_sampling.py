import numpy as np
import pytest

from mvsimage.sampling import (
    bilinear_color,
    binary_value,
    is_safe,
    pixel_color,
    round_coord,
    store_color,
)


def _gradient_image(width, height):
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=width * height * 3, dtype=np.uint8)


def test_bilinear_at_integer_position_matches_pixel():
    img = _gradient_image(5, 4)
    for iy in range(3):
        for ix in range(4):
            got = bilinear_color(img, 5, float(ix), float(iy))
            assert np.allclose(got, pixel_color(img, 5, ix, iy))


def test_bilinear_on_uniform_image_returns_uniform_colour():
    img = np.tile(np.array([12, 80, 200], dtype=np.uint8), 16)
    got = bilinear_color(img, 4, 1.37, 2.61)
    assert np.allclose(got, [12, 80, 200])


def test_bilinear_lies_between_neighbours():
    # 2x2 image: the centre of the four pixels is their mean.
    img = np.array(
        [0, 10, 100, 40, 30, 200, 80, 50, 0, 120, 70, 100],
        dtype=np.uint8,
    )
    got = bilinear_color(img, 2, 0.5, 0.5)
    assert np.allclose(got, [60.0, 40.0, 100.0])


def test_bilinear_outside_buffer_raises():
    img = _gradient_image(3, 3)
    with pytest.raises(IndexError):
        bilinear_color(img, 3, 2.5, 2.5)


def test_pixel_color_outside_raises():
    img = _gradient_image(3, 3)
    with pytest.raises(IndexError):
        pixel_color(img, 3, 0, 3)


def test_store_color_round_trip():
    img = np.zeros(4 * 3 * 3, dtype=np.uint8)
    store_color(img, 4, 2, 1, (10.0, 128.0, 255.0))
    assert list(pixel_color(img, 4, 2, 1)) == [10.0, 128.0, 255.0]
    assert int(img.sum()) == 10 + 128 + 255


def test_store_color_rounds_to_nearest():
    img = bytearray(3 * 2 * 2)
    store_color(img, 2, 1, 1, (10.4, 10.6, 0.5))
    assert list(img[9:12]) == [10, 11, 1]


def test_binary_value_empty_map_is_one():
    assert binary_value(np.zeros(0, dtype=np.uint8), 4, 4, 1, 1) == 1


@pytest.mark.parametrize("ix, iy", [(-1, 0), (0, -1), (3, 0), (0, 2)])
def test_binary_value_out_of_range_is_one(ix, iy):
    data = np.zeros(6, dtype=np.uint8)
    assert binary_value(data, 3, 2, ix, iy) == 1


def test_binary_value_reads_stored_entry():
    data = np.array([0, 255, 0, 0, 0, 7], dtype=np.uint8)
    assert binary_value(data, 3, 2, 1, 0) == 255
    assert binary_value(data, 3, 2, 2, 1) == 7
    assert binary_value(data, 3, 2, 0, 0) == 0


@pytest.mark.parametrize("n", [-3, 0, 1, 42])
def test_round_coord_keeps_integers(n):
    assert round_coord(float(n)) == n


def test_round_coord_halves_round_up():
    assert round_coord(2.5) == 3
    assert round_coord(-0.5) == 0
    assert round_coord(2.49) == 2


def test_is_safe_boundaries():
    assert is_safe((0.0, 0.0), 10, 8)
    assert is_safe((8.0, 6.0), 10, 8)
    assert not is_safe((8.01, 6.0), 10, 8)
    assert not is_safe((1.0, 6.01), 10, 8)
    assert not is_safe((-0.01, 1.0), 10, 8)
    assert not is_safe((1.0, -0.01), 10, 8)