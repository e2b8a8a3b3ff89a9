"""An image with its mask and edge maps, kept as multi-level pyramids."""

from __future__ import annotations

import math
from enum import IntEnum

import numpy as np

from mvsimage.imageio import (
    ImageFormatError,
    complete_name,
    read_any_image,
    read_pbm_image,
    read_pgm_image,
)
from mvsimage.pyramid import (
    PyramidFilter,
    binarize,
    detect_edges,
    downsample_binary,
    downsample_image,
    level_sizes,
)
from mvsimage.sampling import (
    bilinear_color,
    binary_value,
    pixel_color,
    round_coord,
    store_color,
)
from mvsimage.sampling import is_safe as _is_safe

_MASK_THRESHOLD = 127
_EDGE_THRESHOLD = 1

_SIFT_PBIN = 4
_SIFT_ABIN = 8
_SIFT_PNUM = 4
_SIFT_MAX_VALUE = 0.2


class ImageNotAllocatedError(RuntimeError):
    """Raised when pixel data or sizes are requested before they are loaded."""


class _AllocState(IntEnum):
    NOTHING = 0
    SIZE = 1
    MEMORY = 2


def _empty() -> np.ndarray:
    return np.zeros(0, dtype=np.uint8)


class Image:
    """A colour image with optional mask and edge maps at several levels."""

    def __init__(self):
        self._state = _AllocState.NOTHING
        self._images: list[np.ndarray] = []
        self._masks: list[np.ndarray] = []
        self._edges: list[np.ndarray] = []
        self._widths: list[int] = []
        self._heights: list[int] = []
        self.name = ""
        self.mask_name = ""
        self.edge_name = ""
        self.max_level = 1

    # ------------------------------------------------------------------
    def set_files(self, name, mname="", ename="", max_level=1):
        """Set the image, mask and edge file names; extensions are completed."""
        if max_level < 0:
            raise ValueError(f"max_level must not be negative, got {max_level}")
        self._state = _AllocState.NOTHING
        if name:
            self.name = complete_name(str(name), True)
        if mname:
            self.mask_name = complete_name(str(mname), False)
        if ename:
            self.edge_name = complete_name(str(ename), False)
        self.max_level = max_level if max_level != 0 else 1

    def _read_binary_map(self, path: str, threshold: int) -> np.ndarray | None:
        for reader in (read_pgm_image, read_pbm_image):
            try:
                data, width, height = reader(path, False)
            except ImageFormatError:
                continue
            if (width, height) != (self._widths[0], self._heights[0]):
                raise ImageFormatError(
                    f"{path} is {width}x{height}, image is "
                    f"{self._widths[0]}x{self._heights[0]}"
                )
            return binarize(data, threshold)
        return None

    def alloc(self, fast=False, pyramid_filter=PyramidFilter.AVERAGE):
        """Load the image; unless fast, also load the maps and build pyramids."""
        if self._state == _AllocState.SIZE and fast:
            return
        if self._state == _AllocState.MEMORY:
            return
        if len(self.name) < 3:
            raise ValueError(
                f"Image file name has less than 3 characters: {self.name!r}"
            )

        data, width, height = read_any_image(self.name, False)
        sizes = level_sizes(width, height, self.max_level)
        self._widths = [w for w, _ in sizes]
        self._heights = [h for _, h in sizes]
        self._images = [data] + [_empty() for _ in range(1, self.max_level)]
        self._masks = [_empty() for _ in range(self.max_level)]
        self._edges = [_empty() for _ in range(self.max_level)]
        self._state = _AllocState.SIZE
        if fast:
            return

        if self.mask_name:
            mask = self._read_binary_map(self.mask_name, _MASK_THRESHOLD)
            if mask is None:
                self.mask_name = ""
            else:
                self._masks[0] = mask
        if self.edge_name:
            edge = self._read_binary_map(self.edge_name, _EDGE_THRESHOLD)
            if edge is None:
                self.edge_name = ""
            else:
                self._edges[0] = edge

        self._build_images(PyramidFilter(pyramid_filter))
        if self.mask_name:
            self._build_binary(self._masks)
        if self.edge_name:
            self._build_binary(self._edges)
        self._state = _AllocState.MEMORY

    def _build_images(self, pyramid_filter: PyramidFilter) -> None:
        for level in range(1, self.max_level):
            self._images[level] = downsample_image(
                self._images[level - 1],
                self._widths[level - 1], self._heights[level - 1],
                self._widths[level], self._heights[level],
                pyramid_filter,
            )

    def _build_binary(self, maps: list[np.ndarray]) -> None:
        for level in range(1, self.max_level):
            maps[level] = downsample_binary(
                maps[level - 1],
                self._widths[level - 1], self._heights[level - 1],
                self._widths[level], self._heights[level],
            )

    def free(self, free_level=None):
        """Release pixel data.

        With no argument everything is released and only the sizes are kept;
        otherwise the levels below free_level are emptied.
        """
        if free_level is None:
            if self._state != _AllocState.NOTHING:
                self._state = _AllocState.SIZE
            self._images = []
            self._masks = []
            self._edges = []
            return
        for level in range(free_level):
            if level < len(self._images):
                self._images[level] = _empty()
            if self._masks:
                self._masks[level] = _empty()
            if self._edges:
                self._edges[level] = _empty()

    def set_edge(self, threshold):
        """Compute the edge pyramid from image gradients instead of a file."""
        if not self._images or self._images[0].size == 0:
            raise ImageNotAllocatedError("First allocate")
        if len(self._edges) < self.max_level:
            self._edges = [_empty() for _ in range(self.max_level)]
        self._edges[0] = detect_edges(
            self._images[0], self._widths[0], self._heights[0], threshold
        )
        self._build_binary(self._edges)

    # ------------------------------------------------------------------
    def _require(self, state: _AllocState, what: str = "") -> None:
        if self._state < state:
            suffix = f" ({what})" if what else ""
            raise ImageNotAllocatedError(f"First allocate{suffix}")

    def get_color(self, x, y, level=0):
        """Bilinearly interpolated colour at a sub-pixel position."""
        return bilinear_color(self._images[level], self._widths[level], x, y)

    def get_pixel(self, ix, iy, level=0):
        """Colour of the pixel at integer coordinates."""
        return pixel_color(self._images[level], self._widths[level], ix, iy)

    def set_color(self, ix, iy, level, rgb):
        """Store a rounded colour at integer coordinates."""
        store_color(self._images[level], self._widths[level], ix, iy, rgb)

    def get_mask(self, x, y, level=0):
        """Mask value at the nearest pixel; 1 when there is no mask or off image."""
        self._require(_AllocState.MEMORY)
        return binary_value(
            self._masks[level], self._widths[level], self._heights[level],
            round_coord(x), round_coord(y),
        )

    def get_edge(self, x, y, level=0):
        """Edge value at the nearest pixel; 1 when there is no map or off image."""
        self._require(_AllocState.MEMORY)
        return binary_value(
            self._edges[level], self._widths[level], self._heights[level],
            round_coord(x), round_coord(y),
        )

    def width(self, level=0):
        """Width in pixels of the given level."""
        self._require(_AllocState.SIZE, "width")
        return self._widths[level]

    def height(self, level=0):
        """Height in pixels of the given level."""
        self._require(_AllocState.SIZE, "height")
        return self._heights[level]

    def image(self, level=0):
        """Interleaved RGB data of the given level."""
        self._require(_AllocState.MEMORY)
        return self._images[level]

    def mask(self, level=0):
        """Mask data of the given level (empty when there is no mask)."""
        self._require(_AllocState.MEMORY)
        return self._masks[level]

    def edge(self, level=0):
        """Edge data of the given level (empty when there is no edge map)."""
        self._require(_AllocState.MEMORY)
        return self._edges[level]

    def is_safe(self, icoord, level=0):
        """Whether bilinear sampling at icoord stays inside the image."""
        return _is_safe(icoord, self._widths[level], self._heights[level])

    def has_mask(self):
        """Whether a mask has been loaded."""
        return bool(self._masks) and self._masks[0].size > 0

    def has_edge(self):
        """Whether an edge map has been loaded or computed."""
        return bool(self._edges) and self._edges[0].size > 0

    # ------------------------------------------------------------------
    def sift(self, center, xaxis, yaxis):
        """SIFT-like descriptor, sampled at the level matching the axes' length."""
        c = np.asarray(center, dtype=np.float64)
        xa = np.asarray(xaxis, dtype=np.float64)
        ya = np.asarray(yaxis, dtype=np.float64)
        step = (float(np.linalg.norm(xa)) + float(np.linalg.norm(ya))) / 2.0
        level = max(
            0,
            min(self.max_level - 1, math.floor(math.log(step) / math.log(2.0) + 0.5)),
        )
        if level != 0:
            scale = float(1 << level)
            return self.sift_at_level(c / scale, xa / scale, ya / scale, level)
        return self.sift_at_level(c, xa, ya, 0)

    def sift_at_level(self, center, xaxis, yaxis, level):
        """SIFT-like descriptor of 128 values; empty if the patch leaves the image."""
        c = np.asarray(center, dtype=np.float64)
        xa = np.asarray(xaxis, dtype=np.float64)
        ya = np.asarray(yaxis, dtype=np.float64)
        aunit = 2 * math.pi / _SIFT_ABIN
        size = _SIFT_PBIN * _SIFT_PNUM
        half = size // 2
        reach = half - 0.5

        corners = [c + sy * reach * ya + sx * reach * xa
                   for sy in (-1, 1) for sx in (-1, 1)]
        xs = [p[0] for p in corners]
        ys = [p[1] for p in corners]
        if (min(xs) < 0.0 or self.width(level) - 1 <= max(xs)
                or min(ys) < 0.0 or self.height(level) - 1 <= max(ys)):
            return np.zeros(0)

        descriptor = np.zeros(_SIFT_PBIN * _SIFT_PBIN * _SIFT_ABIN)
        sigma2 = 2.0 * half * half
        topleft = corners[0]

        for y in range(size):
            start = topleft + y * ya
            ybin = y // _SIFT_PNUM
            fy = y - half + 0.5
            for x in range(size):
                xbin = x // _SIFT_PNUM
                px, nx = start - xa, start + xa
                py, ny = start - ya, start + ya
                dx = float(self.get_color(nx[0], nx[1], level).sum()
                           - self.get_color(px[0], px[1], level).sum())
                dy = float(self.get_color(ny[0], ny[1], level).sum()
                           - self.get_color(py[0], py[1], level).sum())

                angle = math.atan2(dx, dy)
                if angle < 0.0:
                    angle += 2 * math.pi
                af = angle / aunit
                lf = math.floor(af)
                hfweight = af - lf
                lf %= _SIFT_ABIN
                hf = (lf + 1) % _SIFT_ABIN
                lfweight = 1.0 - hfweight

                fx = x - half + 0.5
                weight = math.hypot(dx, dy) * math.exp(-(fx * fx + fy * fy) / sigma2)
                offset = (ybin * _SIFT_PBIN + xbin) * _SIFT_ABIN
                descriptor[offset + lf] += lfweight * weight
                descriptor[offset + hf] += hfweight * weight
                start = start + xa

        total = float(np.linalg.norm(descriptor))
        if total == 0.0:
            return descriptor
        descriptor /= total
        clipped = descriptor > _SIFT_MAX_VALUE
        if clipped.any():
            descriptor[clipped] = _SIFT_MAX_VALUE
            descriptor /= float(np.linalg.norm(descriptor))
        return descriptor