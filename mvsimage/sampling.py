"""Pixel access helpers for flat, row-major image buffers.

Colour buffers hold three interleaved channels per pixel; mask and edge
buffers hold one value per pixel.
"""

from __future__ import annotations

import math

import numpy as np


def _flat(image) -> np.ndarray:
    return np.asarray(image).reshape(-1)


def bilinear_color(image, width, x, y):
    """Bilinearly interpolated RGB colour at a sub-pixel position.

    The integer part of the position is taken by truncation, and the
    neighbouring pixels are addressed in the flat buffer, so callers should
    keep the position inside the safe region (see :func:`is_safe`).
    """
    arr = _flat(image)
    lx = int(x)
    ly = int(y)
    index = 3 * (ly * width + lx)
    index2 = index + 3 * width
    if index < 0 or index2 + 6 > arr.shape[0]:
        raise IndexError(f"position ({x}, {y}) lies outside the image")

    dx1 = x - lx
    dx0 = 1.0 - dx1
    dy1 = y - ly
    dy0 = 1.0 - dy1

    top = arr[index:index + 6].astype(np.float64)
    bottom = arr[index2:index2 + 6].astype(np.float64)
    return (
        top[:3] * (dx0 * dy0)
        + bottom[:3] * (dx0 * dy1)
        + top[3:] * (dx1 * dy0)
        + bottom[3:] * (dx1 * dy1)
    )


def pixel_color(image, width, ix, iy):
    """RGB colour of the pixel at integer coordinates."""
    arr = _flat(image)
    index = (iy * width + ix) * 3
    if index < 0 or index + 3 > arr.shape[0]:
        raise IndexError(f"pixel ({ix}, {iy}) lies outside the image")
    return arr[index:index + 3].astype(np.float64)


def store_color(image, width, ix, iy, rgb):
    """Write a rounded RGB colour into a mutable byte buffer in place."""
    target = image.reshape(-1) if isinstance(image, np.ndarray) else image
    index = (iy * width + ix) * 3
    if index < 0 or index + 3 > len(target):
        raise IndexError(f"pixel ({ix}, {iy}) lies outside the image")
    values = np.floor(np.asarray(rgb, dtype=np.float64).reshape(-1)[:3] + 0.5)
    target[index:index + 3] = [int(v) & 0xFF for v in values]


def binary_value(data, width, height, ix, iy):
    """Value of a mask or edge map; 1 where the map is empty or out of range."""
    arr = _flat(data)
    if arr.shape[0] == 0:
        return 1
    if ix < 0 or width <= ix or iy < 0 or height <= iy:
        return 1
    return int(arr[iy * width + ix])


def round_coord(f):
    """Nearest integer pixel coordinate, halves rounded up."""
    return int(math.floor(f + 0.5))


def is_safe(icoord, width, height):
    """Whether bilinear sampling at icoord stays inside a width x height image."""
    x = float(icoord[0])
    y = float(icoord[1])
    return not (x < 0.0 or width - 2 < x or y < 0.0 or height - 2 < y)