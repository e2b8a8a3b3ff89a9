"""Construction of image, mask and edge pyramids."""

from __future__ import annotations

import math
from enum import IntEnum

import numpy as np

from mvsimage.processing import filter_g

_TAPS = (1.0, 3.0, 3.0, 1.0)
_TAP_TOTAL = 64.0
_EDGE_SIGMA = 3.0


class PyramidFilter(IntEnum):
    """How a 4x4 neighbourhood is reduced to one pixel of the next level."""

    AVERAGE = 0
    MAX = 1
    MIN = 2


def _as_grid(data, width: int, height: int, channels: int) -> np.ndarray:
    arr = np.asarray(data).reshape(-1)
    count = width * height * channels
    if arr.shape[0] < count:
        raise ValueError(f"data holds {arr.shape[0]} values, need {count}")
    shape = (height, width, channels) if channels > 1 else (height, width)
    return arr[:count].reshape(shape)


def _check_reduction(width, height, new_width, new_height) -> None:
    if new_width < 0 or new_height < 0:
        raise ValueError("output size must not be negative")
    if (new_width and 2 * (new_width - 1) >= width) or (
        new_height and 2 * (new_height - 1) >= height
    ):
        raise ValueError(
            f"cannot reduce {width}x{height} to {new_width}x{new_height}"
        )


def level_sizes(width, height, max_level):
    """(width, height) of every level, each half the size of the one before."""
    if max_level < 1:
        raise ValueError(f"max_level must be at least 1, got {max_level}")
    sizes = [(width, height)]
    for _ in range(1, max_level):
        w, h = sizes[-1]
        sizes.append((w // 2, h // 2))
    return sizes


def downsample_image(prev, width, height, new_width, new_height,
                     pyramid_filter=PyramidFilter.AVERAGE):
    """Reduce an interleaved RGB image to the next pyramid level.

    Each output pixel looks at the 4x4 block starting one pixel before its
    doubled position; pixels outside the image are ignored.
    """
    mode = PyramidFilter(pyramid_filter)
    _check_reduction(width, height, new_width, new_height)
    src = _as_grid(prev, width, height, 3).astype(np.float64)

    shape = (new_height, new_width, 3)
    if mode == PyramidFilter.MIN:
        acc = np.full(shape, 255.0)
    else:
        acc = np.zeros(shape)
    denom = np.zeros((new_height, new_width))

    base_y = 2 * np.arange(new_height)
    base_x = 2 * np.arange(new_width)
    for j, wy in zip(range(-1, 3), _TAPS):
        ys = base_y + j
        valid_y = (ys >= 0) & (ys < height)
        rows = np.nonzero(valid_y)[0]
        for i, wx in zip(range(-1, 3), _TAPS):
            xs = base_x + i
            valid_x = (xs >= 0) & (xs < width)
            cols = np.nonzero(valid_x)[0]
            if rows.size == 0 or cols.size == 0:
                continue
            block = src[np.ix_(ys[valid_y], xs[valid_x])]
            target = np.ix_(rows, cols)
            if mode == PyramidFilter.AVERAGE:
                weight = wy * wx / _TAP_TOTAL
                acc[target] += weight * block
                denom[target] += weight
            elif mode == PyramidFilter.MAX:
                acc[target] = np.maximum(acc[target], block)
            else:
                acc[target] = np.minimum(acc[target], block)

    if mode == PyramidFilter.AVERAGE:
        acc /= denom[..., None]
    rounded = np.floor(acc + 0.5).astype(np.int64) & 0xFF
    return rounded.astype(np.uint8).reshape(-1)


def downsample_binary(prev, width, height, new_width, new_height):
    """Reduce a mask or edge map: a pixel is set if any of its 2x2 block is."""
    _check_reduction(width, height, new_width, new_height)
    src = _as_grid(prev, width, height, 1) != 0
    ys0 = 2 * np.arange(new_height)
    ys1 = np.minimum(height - 1, ys0 + 1)
    xs0 = 2 * np.arange(new_width)
    xs1 = np.minimum(width - 1, xs0 + 1)
    hit = np.zeros((new_height, new_width), dtype=bool)
    for ys in (ys0, ys1):
        for xs in (xs0, xs1):
            hit |= src[np.ix_(ys, xs)]
    return np.where(hit, 255, 0).astype(np.uint8).reshape(-1)


def binarize(data, threshold):
    """255 where a value exceeds threshold, 0 elsewhere."""
    arr = np.asarray(data).reshape(-1)
    return np.where(arr.astype(np.int64) > threshold, 255, 0).astype(np.uint8)


def detect_edges(image, width, height, threshold):
    """Edge map of an RGB image from smoothed squared central differences."""
    img = _as_grid(image, width, height, 3).astype(np.int64)
    grad = np.zeros((height, width))
    if height >= 3 and width >= 3:
        dx = img[1:-1, 2:] - img[1:-1, :-2]
        dy = img[2:, 1:-1] - img[:-2, 1:-1]
        grad[1:-1, 1:-1] = (dx * dx + dy * dy).sum(axis=2)

    margin = math.floor(2 * _EDGE_SIGMA)
    sigma2 = 2.0 * _EDGE_SIGMA * _EDGE_SIGMA
    offsets = np.arange(-margin, margin + 1, dtype=np.float64)
    kernel = np.exp(-offsets * offsets / sigma2)
    smoothed = filter_g(kernel, grad)

    span = 2 * margin + 1
    limit = threshold * threshold * span * span / 3.0
    return np.where(limit < smoothed, 255, 0).astype(np.uint8).reshape(-1)