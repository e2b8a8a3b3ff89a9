import numpy as np
import pytest

from mvsimage.image import Image, ImageNotAllocatedError
from mvsimage.imageio import ImageFormatError, write_pgm_image, write_ppm_image


def _uniform(width, height, rgb):
    return np.tile(np.array(rgb, dtype=np.uint8), width * height)


def _gradient(width, height):
    row = np.repeat((np.arange(width) * 5).astype(np.uint8), 3)
    return np.tile(row, height)


def _make(tmp_path, data, width, height, name="img", max_level=1,
          mask=None, edge=None):
    write_ppm_image(tmp_path / f"{name}.ppm", data, width, height)
    mname = ename = ""
    if mask is not None:
        mname = str(tmp_path / "mask.pgm")
        write_pgm_image(mname, mask, width, height)
    if edge is not None:
        ename = str(tmp_path / "edge.pgm")
        write_pgm_image(ename, edge, width, height)
    img = Image()
    img.set_files(str(tmp_path / name), mname, ename, max_level)
    return img


def test_set_files_completes_extension(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (1, 2, 3)), 4, 4)
    assert img.name.endswith(".ppm")


def test_zero_levels_becomes_one(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (1, 2, 3)), 4, 4, max_level=0)
    assert img.max_level == 1


def test_width_before_alloc_raises(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (1, 2, 3)), 4, 4)
    with pytest.raises(ImageNotAllocatedError):
        img.width(0)


def test_alloc_sizes_per_level(tmp_path):
    img = _make(tmp_path, _uniform(8, 6, (9, 9, 9)), 8, 6, max_level=2)
    img.alloc()
    assert (img.width(0), img.height(0)) == (8, 6)
    assert (img.width(1), img.height(1)) == (4, 3)


def test_pixel_matches_written_data(tmp_path):
    img = _make(tmp_path, _uniform(5, 5, (10, 20, 30)), 5, 5)
    img.alloc()
    assert img.get_pixel(2, 3, 0).tolist() == [10.0, 20.0, 30.0]


def test_bilinear_on_uniform_image(tmp_path):
    img = _make(tmp_path, _uniform(6, 6, (40, 50, 60)), 6, 6)
    img.alloc()
    assert np.allclose(img.get_color(2.3, 1.7, 0), [40, 50, 60])


def test_uniform_pyramid_stays_uniform(tmp_path):
    img = _make(tmp_path, _uniform(8, 8, (40, 50, 60)), 8, 8, max_level=3)
    img.alloc()
    assert img.image(2).tolist() == _uniform(2, 2, (40, 50, 60)).tolist()


def test_set_color_round_trip(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (0, 0, 0)), 4, 4)
    img.alloc()
    img.set_color(1, 2, 0, (10.4, 20.6, 30.0))
    assert img.get_pixel(1, 2, 0).tolist() == [10.0, 21.0, 30.0]


def test_fast_alloc_keeps_sizes_but_not_pyramid(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (1, 1, 1)), 4, 4)
    img.alloc(fast=True)
    assert img.width(0) == 4
    with pytest.raises(ImageNotAllocatedError):
        img.image(0)


def test_mask_values(tmp_path):
    mask = np.zeros(16, dtype=np.uint8)
    mask[5] = 200
    img = _make(tmp_path, _uniform(4, 4, (1, 1, 1)), 4, 4, mask=mask)
    img.alloc()
    assert img.has_mask()
    assert img.get_mask(1, 1, 0) == 255
    assert img.get_mask(0, 0, 0) == 0
    assert img.get_mask(1.2, 0.8, 0) == 255
    assert img.get_mask(-3, 0, 0) == 1


def test_mask_pyramid_any_set(tmp_path):
    mask = np.zeros(16, dtype=np.uint8)
    mask[5] = 200
    img = _make(tmp_path, _uniform(4, 4, (1, 1, 1)), 4, 4, max_level=2, mask=mask)
    img.alloc()
    assert img.mask(1).tolist() == [255, 0, 0, 0]


def test_no_mask_returns_one(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (1, 1, 1)), 4, 4)
    img.alloc()
    assert not img.has_mask()
    assert img.get_mask(1, 1, 0) == 1


def test_edge_file_threshold(tmp_path):
    edge = np.zeros(16, dtype=np.uint8)
    edge[0] = 1
    edge[1] = 2
    img = _make(tmp_path, _uniform(4, 4, (1, 1, 1)), 4, 4, edge=edge)
    img.alloc()
    assert img.has_edge()
    assert img.get_edge(0, 0, 0) == 0
    assert img.get_edge(1, 0, 0) == 255


def test_free_all(tmp_path):
    img = _make(tmp_path, _uniform(4, 4, (1, 1, 1)), 4, 4)
    img.alloc()
    img.free()
    assert img.width(0) == 4
    with pytest.raises(ImageNotAllocatedError):
        img.image(0)


def test_free_lower_levels(tmp_path):
    img = _make(tmp_path, _uniform(8, 8, (1, 1, 1)), 8, 8, max_level=2)
    img.alloc()
    img.free(1)
    assert img.image(0).size == 0
    assert img.image(1).size == 4 * 4 * 3


def test_is_safe(tmp_path):
    img = _make(tmp_path, _uniform(6, 6, (1, 1, 1)), 6, 6)
    img.alloc()
    assert img.is_safe((4.0, 4.0, 1.0), 0)
    assert not img.is_safe((4.5, 1.0, 1.0), 0)
    assert not img.is_safe((-0.1, 1.0, 1.0), 0)


def test_set_edge_uniform_has_no_edges(tmp_path):
    img = _make(tmp_path, _uniform(12, 12, (7, 7, 7)), 12, 12, max_level=2)
    img.alloc()
    img.set_edge(1.0)
    assert img.has_edge()
    assert not img.edge(0).any()
    assert not img.edge(1).any()


def test_set_edge_detects_step(tmp_path):
    data = _uniform(12, 12, (0, 0, 0)).reshape(12, 12, 3)
    data[:, 6:] = 255
    img = _make(tmp_path, data.reshape(-1), 12, 12)
    img.alloc()
    img.set_edge(1.0)
    assert img.get_edge(6, 6, 0) == 255


def test_set_edge_requires_data():
    with pytest.raises(ImageNotAllocatedError):
        Image().set_edge(1.0)


def test_sift_uniform_is_zero(tmp_path):
    img = _make(tmp_path, _uniform(40, 40, (50, 50, 50)), 40, 40)
    img.alloc()
    desc = img.sift((20.0, 20.0, 1.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert desc.shape == (128,)
    assert not desc.any()


def test_sift_gradient_is_normalised(tmp_path):
    img = _make(tmp_path, _gradient(40, 40), 40, 40)
    img.alloc()
    desc = img.sift((20.0, 20.0, 1.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert desc.shape == (128,)
    assert np.linalg.norm(desc) == pytest.approx(1.0)
    assert (desc >= 0).all()


def test_sift_outside_is_empty(tmp_path):
    img = _make(tmp_path, _uniform(40, 40, (50, 50, 50)), 40, 40)
    img.alloc()
    desc = img.sift_at_level((2.0, 2.0, 1.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), 0)
    assert desc.size == 0


def test_alloc_bad_file_raises(tmp_path):
    (tmp_path / "bad.jpg").write_bytes(b"not an image")
    img = Image()
    img.set_files(str(tmp_path / "bad.jpg"), "", "", 1)
    with pytest.raises(ImageFormatError):
        img.alloc()


def test_alloc_short_name_raises():
    img = Image()
    with pytest.raises(ValueError):
        img.alloc()