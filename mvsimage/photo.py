"""Images with camera parameters and texture comparison measures."""

from __future__ import annotations

import math

import numpy as np

from mvsimage.camera import Camera
from mvsimage.image import Image, ImageNotAllocatedError


def _textures(tex) -> np.ndarray:
    return np.asarray(tex, dtype=np.float64).reshape(-1, 3)


def _empty_texture() -> np.ndarray:
    return np.zeros((0, 3))


def _unitize(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    return v / n if n != 0.0 else v


class Photo(Image):
    """An image pyramid together with the camera that took it."""

    def __init__(self):
        super().__init__()
        self.camera = Camera()

    def load(self, name, mname, ename, cname, max_level=1):
        """Set the image, mask and edge files and read the camera file."""
        self.set_files(name, mname, ename, max_level)
        self.camera.load(cname, self.max_level)

    # ------------------------------------------------------------------
    def grab_tex_2d(self, level, icoord, xaxis, yaxis, size, normalize_tex=True):
        """Sample a square patch of colours spanned by two image-space axes.

        Returns an (n, 3) array, empty when the patch leaves the image.
        """
        margin = size // 2
        centre = np.asarray(icoord, dtype=np.float64).reshape(-1)[:2]
        xa = np.asarray(xaxis, dtype=np.float64).reshape(-1)[:2]
        ya = np.asarray(yaxis, dtype=np.float64).reshape(-1)[:2]

        span_x = size * abs(xa[0]) + size * abs(ya[0])
        span_y = size * abs(xa[1]) + size * abs(ya[1])
        if (centre[0] - span_x < 0 or self.width(level) - 1 <= centre[0] + span_x
                or centre[1] - span_y < 0
                or self.height(level) - 1 <= centre[1] + span_y):
            return _empty_texture()

        samples = []
        for y in range(-margin, margin + 1):
            pos = centre - margin * xa + y * ya
            for _ in range(2 * margin + 1):
                samples.append(self.get_color(pos[0], pos[1], level))
                pos = pos + xa
        tex = np.array(samples, dtype=np.float64)
        return normalize(tex) if normalize_tex else tex

    def grab_tex(self, level, coord, pxaxis, pyaxis, pzaxis, size, normalize_tex=True):
        """Sample a patch around a 3D point given its tangent axes and normal.

        Returns the texture and a weight: the cosine between the normal and
        the direction to the camera, clamped at zero.
        """
        scale = 1 << level
        c = np.asarray(coord, dtype=np.float64).reshape(-1)
        px = np.asarray(pxaxis, dtype=np.float64).reshape(-1)
        py = np.asarray(pyaxis, dtype=np.float64).reshape(-1)
        pz = np.asarray(pzaxis, dtype=np.float64).reshape(-1)

        origin = self.camera.project(c, level)
        xaxis = (self.camera.project(c + px * scale, level) - origin)[:2]
        yaxis = (self.camera.project(c + py * scale, level) - origin)[:2]
        tex = self.grab_tex_2d(level, origin[:2], xaxis, yaxis, size, normalize_tex)

        ray = _unitize(self.camera.center - c)
        weight = max(0.0, float(pz @ ray))
        return tex, weight

    # ------------------------------------------------------------------
    def get_color_at(self, coord, level=0):
        """Colour where a 3D point projects."""
        icoord = self.camera.project(coord, level)
        return self.get_color(icoord[0], icoord[1], level)

    def get_mask_at(self, coord, level=0):
        """Mask value where a 3D point projects; 1 without a mask."""
        if not self._masks:
            raise ImageNotAllocatedError("First allocate")
        if self._masks[level].size == 0:
            return 1
        icoord = self.camera.project(coord, level)
        return self.get_mask(icoord[0], icoord[1], level)

    def get_edge_at(self, coord, level=0):
        """Edge value where a 3D point projects; 0 off the image, 1 without a map."""
        if not self._edges:
            raise ImageNotAllocatedError("First allocate")
        if self._edges[level].size == 0:
            return 1
        icoord = self.camera.project(coord, level)
        if (icoord[0] < 0 or self._widths[level] - 1 <= icoord[0]
                or icoord[1] < 0 or self._heights[level] - 1 <= icoord[1]):
            return 0
        return self.get_edge(icoord[0], icoord[1], level)


def _pair(tex0, tex1, what: str) -> tuple[np.ndarray, np.ndarray]:
    a = _textures(tex0)
    b = _textures(tex1)
    if a.shape[0] == 0 or b.shape[0] == 0:
        raise ValueError(f"Error in {what}. Empty textures")
    if a.shape != b.shape:
        raise ValueError(f"Error in {what}. Textures differ in size")
    return a, b


def idot(tex0, tex1):
    """One minus the normalised cross-correlation of two textures."""
    a, b = _pair(tex0, tex1, "idot")
    return 1.0 - float(np.sum(a * b)) / (3 * a.shape[0])


def idot_c(tex0, tex1):
    """idot computed separately for each colour channel."""
    a, b = _pair(tex0, tex1, "idotC")
    return 1.0 - (a * b).sum(axis=0) / a.shape[0]


def normalize(tex):
    """Texture shifted to zero mean and scaled to unit deviation."""
    arr = _textures(tex).copy()
    if arr.shape[0] == 0:
        return arr
    arr -= arr.mean(axis=0)
    deviation = math.sqrt(float(np.sum(arr * arr)) / (arr.shape[0] * 3))
    if deviation == 0.0:
        deviation = 1.0
    return arr / deviation


def ssd(tex0, tex1):
    """Mean squared colour difference scaled by the largest possible value."""
    a, b = _pair(tex0, tex1, "ssd")
    diff = a - b
    return float(np.sum(diff * diff)) / (a.shape[0] * (255.0 * 255.0 * 3.0))