"""A set of photos sharing one directory layout."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np

from mvsimage.photo import Photo, idot

_log = logging.getLogger(__name__)

_IMAGE_SUFFIXES = (".ppm", ".jpg", ".png", ".tiff")
_ANGLE_MARGIN = math.cos(math.radians(10.0))


def _unitize(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    return v / n if n != 0.0 else v


class PhotoSet:
    """Photos addressed by position, with lookup from image number."""

    def __init__(self):
        self.images: list[int] = []
        self.photos: list[Photo] = []
        self.index_of: dict[int, int] = {}
        self.num = 0
        self.prefix = ""
        self.max_level = 1
        self.size = 1
        self.distances = np.zeros((0, 0))

    def load(self, images, prefix, max_level, size, alloc=True):
        """Load every numbered photo below prefix.

        Files are looked up as eight-digit names first and four-digit names
        otherwise, in the visualize, masks, edges and txt directories.
        """
        self.images = [int(i) for i in images]
        self.num = len(self.images)
        self.index_of = {image: index for index, image in enumerate(self.images)}
        self.prefix = str(prefix)
        self.max_level = max(1, max_level)
        self.photos = []
        for image in self.images:
            stem = f"{image:08d}"
            base = f"{self.prefix}visualize/{stem}"
            if not any(Path(base + suffix).is_file() for suffix in _IMAGE_SUFFIXES):
                stem = f"{image:04d}"
            photo = Photo()
            photo.load(
                f"{self.prefix}visualize/{stem}",
                f"{self.prefix}masks/{stem}",
                f"{self.prefix}edges/{stem}",
                f"{self.prefix}txt/{stem}.txt",
                self.max_level,
            )
            photo.alloc(fast=not alloc)
            self.photos.append(photo)
            _log.debug("read image %s", stem)
        self.size = 2 * (size // 2) + 1

    def free(self, level=None):
        """Release pixel data of every photo (see Image.free)."""
        for photo in self.photos:
            photo.free(level)

    def set_edge(self, threshold):
        """Compute edge maps from image gradients for every photo."""
        for photo in self.photos:
            photo.set_edge(threshold)

    def write(self, outdir):
        """Write every camera as outdir followed by an eight-digit file name."""
        for image, photo in zip(self.images, self.photos):
            photo.camera.write(f"{outdir}{image:08d}.txt")

    # ------------------------------------------------------------------
    def get_paxes(self, index, coord, normal):
        """Tangent axes of a point in the given photo."""
        return self.photos[index].camera.get_paxes(coord, normal)

    def grab_tex_2d(self, index, level, icoord, xaxis, yaxis, normalize_tex=True):
        """Sample a patch of the set's window size from an image."""
        return self.photos[index].grab_tex_2d(
            level, icoord, xaxis, yaxis, self.size, normalize_tex
        )

    def grab_tex(self, index, level, coord, pxaxis, pyaxis, pzaxis, normalize_tex=True):
        """Sample a patch around a 3D point; returns texture and weight."""
        return self.photos[index].grab_tex(
            level, coord, pxaxis, pyaxis, pzaxis, self.size, normalize_tex
        )

    def project(self, index, coord, level=0):
        """Image coordinates of a 3D point in the given photo."""
        return self.photos[index].camera.project(coord, level)

    def mult(self, index, coord, level=0):
        """Product of a 3D point with the photo's projection matrix."""
        return self.photos[index].camera.mult(coord, level)

    def width(self, index, level=0):
        """Width of a photo at a level."""
        return self.photos[index].width(level)

    def height(self, index, level=0):
        """Height of a photo at a level."""
        return self.photos[index].height(level)

    def get_color_at(self, coord, index, level=0):
        """Colour where a 3D point projects into a photo."""
        return self.photos[index].get_color_at(coord, level)

    def get_color(self, index, x, y, level=0):
        """Interpolated colour at image coordinates of a photo."""
        return self.photos[index].get_color(x, y, level)

    def get_mask_all(self, coord, level=0):
        """0 if any photo masks out the point, 1 otherwise."""
        for index in range(self.num):
            if self.get_mask_at(coord, index, level) == 0:
                return 0
        return 1

    def get_mask_at(self, coord, index, level=0):
        """Mask value where a 3D point projects into a photo."""
        return self.photos[index].get_mask_at(coord, level)

    def get_mask(self, index, x, y, level=0):
        """Mask value at image coordinates of a photo."""
        return self.photos[index].get_mask(x, y, level)

    def get_edge_at(self, coord, index, level=0):
        """Edge value where a 3D point projects into a photo."""
        return self.photos[index].get_edge_at(coord, level)

    def get_edge(self, index, x, y, level=0):
        """Edge value at image coordinates of a photo."""
        return self.photos[index].get_edge(x, y, level)

    # ------------------------------------------------------------------
    def _pair_angles(self, coord, indexes):
        c = np.asarray(coord, dtype=np.float64).reshape(-1)
        rays = [_unitize(self.photos[i].camera.center - c) for i in indexes]
        for i, ray_i in enumerate(rays):
            for ray_j in rays[i + 1:]:
                dot = max(-1.0, min(1.0, float(ray_i @ ray_j)))
                yield math.acos(dot)

    def check_angles(self, coord, indexes, min_angle, max_angle, num):
        """True when no pair of viewing rays has an angle strictly in range."""
        count = sum(
            1 for angle in self._pair_angles(coord, indexes)
            if min_angle < angle < max_angle
        )
        return count < 1

    def min_max_angles(self, coord, indexes):
        """Smallest and largest angle between viewing rays to a point."""
        low = math.pi
        high = 0.0
        for angle in self._pair_angles(coord, indexes):
            low = min(angle, low)
            high = max(angle, high)
        return low, high

    def compute_depth(self, index, coord):
        """Depth of a point in the given photo."""
        return self.photos[index].camera.compute_depth(coord)

    def set_distances(self):
        """Pairwise distances from optical centers and viewing directions."""
        centers = [photo.camera.center for photo in self.photos]
        distances = np.zeros((self.num, self.num))
        total = 0.0
        count = 0
        for i in range(self.num):
            for j in range(self.num):
                if i != j:
                    d = float(np.linalg.norm(centers[i] - centers[j]))
                    distances[i, j] = d
                    total += d
                    count += 1
        self.distances = distances
        if count == 0:
            return
        average = total / count
        if average == 0.0:
            raise ValueError("All the optical centers are identical")

        axes = []
        for photo in self.photos:
            ray = photo.camera.oaxis.copy()
            ray[3] = 0.0
            axes.append(ray)
        for i in range(self.num):
            for j in range(self.num):
                distances[i, j] /= average
                distances[i, j] += max(
                    0.0, 1.0 - float(axes[i] @ axes[j]) - _ANGLE_MARGIN
                )

    def image2index(self, image):
        """Position of an image number in the set, or -1."""
        return self.index_of.get(image, -1)


def incc(texs, weights):
    """Weighted mean of pairwise idot over non-empty textures; 2.0 if none."""
    total = 0.0
    denom = 0.0
    textures = [np.asarray(t, dtype=np.float64).reshape(-1, 3) for t in texs]
    for i, weight_i in enumerate(weights):
        if textures[i].shape[0] == 0:
            continue
        for j in range(i + 1, len(weights)):
            if textures[j].shape[0] == 0:
                continue
            weight = weight_i * weights[j]
            total += idot(textures[i], textures[j]) * weight
            denom += weight
    if denom == 0.0:
        return 2.0
    return total / denom