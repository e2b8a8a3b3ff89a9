import numpy as np
import pytest

from mvsimage.imageio import write_ppm_image
from mvsimage.image import ImageNotAllocatedError
from mvsimage.photo import Photo, idot, idot_c, normalize, ssd

WIDTH = 20
HEIGHT = 20
CAMERA_TEXT = "CONTOUR\n10 0 10 0\n0 10 10 0\n0 0 1 0\n"


def _pixels():
    ys, xs = np.mgrid[0:HEIGHT, 0:WIDTH]
    img = np.stack([xs * 10, ys * 10, np.full_like(xs, 50)], axis=-1)
    return img.astype(np.uint8).reshape(-1)


def _make_photo(tmp_path, max_level=1):
    (tmp_path / "visualize").mkdir()
    (tmp_path / "txt").mkdir()
    write_ppm_image(tmp_path / "visualize" / "0000.ppm", _pixels(), WIDTH, HEIGHT)
    (tmp_path / "txt" / "0000.txt").write_text(CAMERA_TEXT)
    photo = Photo()
    photo.load(
        str(tmp_path / "visualize" / "0000"), "", "",
        str(tmp_path / "txt" / "0000.txt"), max_level,
    )
    photo.alloc()
    return photo


def _random_tex(seed=0, n=9):
    return np.random.default_rng(seed).uniform(0, 255, size=(n, 3))


def test_normalize_gives_zero_mean_unit_deviation():
    tex = normalize(_random_tex())
    assert np.allclose(tex.mean(axis=0), 0.0)
    assert np.sum(tex * tex) / tex.size == pytest.approx(1.0)


def test_normalize_constant_texture_becomes_zero():
    tex = normalize(np.full((4, 3), 7.0))
    assert np.allclose(tex, 0.0)


def test_idot_of_normalized_texture_with_itself_is_zero():
    tex = normalize(_random_tex(1))
    assert idot(tex, tex) == pytest.approx(0.0)


def test_idot_c_mean_matches_idot():
    a = normalize(_random_tex(2))
    b = normalize(_random_tex(3))
    assert np.mean(idot_c(a, b)) == pytest.approx(idot(a, b))


def test_idot_rejects_empty():
    with pytest.raises(ValueError):
        idot(np.zeros((0, 3)), np.ones((2, 3)))


def test_ssd_identical_is_zero_and_extremes_give_one():
    tex = _random_tex(4)
    assert ssd(tex, tex) == pytest.approx(0.0)
    assert ssd(np.zeros((5, 3)), np.full((5, 3), 255.0)) == pytest.approx(1.0)


def test_ssd_rejects_empty():
    with pytest.raises(ValueError):
        ssd(np.zeros((0, 3)), np.zeros((0, 3)))


def test_load_reads_image_and_camera(tmp_path):
    photo = _make_photo(tmp_path, max_level=2)
    assert photo.width(0) == WIDTH
    assert photo.width(1) == WIDTH // 2
    assert np.allclose(photo.camera.center, [0.0, 0.0, 0.0, 1.0])


def test_get_color_at_projects_point(tmp_path):
    photo = _make_photo(tmp_path)
    assert np.allclose(photo.get_color_at([0.0, 0.0, 5.0, 1.0], 0), [100, 100, 50])


def test_grab_tex_2d_samples_patch(tmp_path):
    photo = _make_photo(tmp_path)
    tex = photo.grab_tex_2d(0, [10.0, 10.0], [1.0, 0.0], [0.0, 1.0], 5, False)
    assert tex.shape == (25, 3)
    assert np.allclose(tex[0], [80, 80, 50])
    assert np.allclose(tex[-1], [120, 120, 50])


def test_grab_tex_2d_normalizes_by_default(tmp_path):
    photo = _make_photo(tmp_path)
    tex = photo.grab_tex_2d(0, [10.0, 10.0], [1.0, 0.0], [0.0, 1.0], 5)
    assert np.allclose(tex.mean(axis=0), 0.0)


def test_grab_tex_2d_outside_is_empty(tmp_path):
    photo = _make_photo(tmp_path)
    tex = photo.grab_tex_2d(0, [2.0, 10.0], [1.0, 0.0], [0.0, 1.0], 5, False)
    assert tex.shape == (0, 3)


def test_grab_tex_matches_2d_sampling(tmp_path):
    photo = _make_photo(tmp_path)
    tex, weight = photo.grab_tex(
        0, [0.0, 0.0, 5.0, 1.0], [0.5, 0.0, 0.0, 0.0], [0.0, 0.5, 0.0, 0.0],
        [0.0, 0.0, -1.0, 0.0], 5, False,
    )
    expected = photo.grab_tex_2d(0, [10.0, 10.0], [1.0, 0.0], [0.0, 1.0], 5, False)
    assert np.allclose(tex, expected)
    assert weight == pytest.approx(1.0)


def test_grab_tex_weight_clamped_when_facing_away(tmp_path):
    photo = _make_photo(tmp_path)
    _, weight = photo.grab_tex(
        0, [0.0, 0.0, 5.0, 1.0], [0.5, 0.0, 0.0, 0.0], [0.0, 0.5, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0], 5, False,
    )
    assert weight == 0.0


def test_mask_and_edge_default_to_one(tmp_path):
    photo = _make_photo(tmp_path)
    point = [0.0, 0.0, 5.0, 1.0]
    assert photo.get_mask_at(point, 0) == 1
    assert photo.get_edge_at(point, 0) == 1


def test_edge_off_image_is_zero(tmp_path):
    photo = _make_photo(tmp_path)
    photo.set_edge(1.0)
    assert photo.has_edge()
    assert photo.get_edge_at([20.0, 0.0, 5.0, 1.0], 0) == 0


def test_mask_after_free_raises(tmp_path):
    photo = _make_photo(tmp_path)
    photo.free()
    with pytest.raises(ImageNotAllocatedError):
        photo.get_mask_at([0.0, 0.0, 5.0, 1.0], 0)