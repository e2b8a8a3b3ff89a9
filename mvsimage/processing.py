"""Colour conversions and low-level filtering on 2D float arrays."""

from __future__ import annotations

import math

import numpy as np


def rgb2hs(r, g, b):
    """Hue (degrees, -1 when undefined) and saturation of an RGB colour."""
    high = max(r, g, b)
    low = min(r, g, b)
    delta = high - low
    s = 0.0 if high == 0.0 else delta / high
    h = -1.0
    if s != 0.0:
        h = _hue(r, g, b, high, delta)
    return h, s


def rgb2hsv(r, g, b):
    """Hue (degrees, 0 when undefined), saturation and value of an RGB colour."""
    high = max(r, g, b)
    low = min(r, g, b)
    delta = high - low
    s = 0.0 if high == 0.0 else delta / high
    h = 0.0
    if s != 0.0:
        h = _hue(r, g, b, high, delta)
    return h, s, float(high)


def _hue(r, g, b, high, delta) -> float:
    rc = (high - r) / delta
    gc = (high - g) / delta
    bc = (high - b) / delta
    if r == high:
        h = bc - gc
    elif g == high:
        h = 2 + rc - bc
    else:
        h = 4 + gc - rc
    h *= 60
    if h < 0:
        h += 360
    return float(h)


def hsdis(h0, s0, h1, s1):
    """Half the distance between two hue/saturation points on the colour disc."""
    a0 = math.radians(h0)
    a1 = math.radians(h1)
    dx = s0 * math.cos(a0) - s1 * math.cos(a1)
    dy = s0 * math.sin(a0) - s1 * math.sin(a1)
    return math.hypot(dx, dy) / 2.0


def gray2rgb(gray):
    """Map a value in [0, 1] to a blue-green-red colour ramp."""
    if gray < 0.5:
        g = 2.0 * gray
        return 0.0, g, 1.0 - g
    r = (gray - 0.5) * 2.0
    return r, 1.0 - r, 0.0


def create_filter(sigma):
    """Normalised 1D Gaussian kernel of half-width floor(2 * sigma)."""
    margin = math.floor(2 * sigma)
    sigma2 = 2.0 * sigma * sigma
    offsets = np.arange(-margin, margin + 1, dtype=np.float64)
    kernel = np.exp(-offsets * offsets / sigma2)
    return kernel / kernel.sum()


def _check_kernel(kernel) -> np.ndarray:
    k = np.asarray(kernel, dtype=np.float64).reshape(-1)
    if k.shape[0] % 2 == 0:
        raise ValueError("Filter must have an odd length")
    return k


def _smooth_axis(data: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    margin = kernel.shape[0] // 2
    moved = np.moveaxis(data, axis, 0)
    n = moved.shape[0]
    out = np.zeros_like(moved)
    denom = np.zeros(n)
    for j, weight in enumerate(kernel):
        off = j - margin
        lo = max(0, -off)
        hi = min(n, n - off)
        if lo >= hi:
            continue
        out[lo:hi] += weight * moved[lo + off:hi + off]
        denom[lo:hi] += weight
    with np.errstate(divide="ignore", invalid="ignore"):
        out /= denom.reshape((-1,) + (1,) * (moved.ndim - 1))
    return np.moveaxis(out, 0, axis)


def filter_g(kernel, data):
    """Separable smoothing of a 2D array, renormalised at the borders.

    The kernel is applied vertically and then horizontally; the result is a
    new float array.
    """
    k = _check_kernel(kernel)
    arr = np.array(data, dtype=np.float64)
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError("data must be a non-empty 2D array")
    return _smooth_axis(_smooth_axis(arr, k, 0), k, 1)


def filter_g_flat(kernel, width, height, data):
    """filter_g on a row-major flat array of the given size."""
    arr = np.asarray(data, dtype=np.float64).reshape(-1)
    if arr.shape[0] != width * height:
        raise ValueError(f"data holds {arr.shape[0]} values, need {width * height}")
    return filter_g(kernel, arr.reshape(height, width)).reshape(-1)


def nms(data):
    """Zero every value smaller than one of its four neighbours."""
    arr = np.array(data, dtype=np.float64)
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError("data must be a non-empty 2D array")
    suppress = np.zeros(arr.shape, dtype=bool)
    suppress[:, 1:] |= arr[:, 1:] < arr[:, :-1]
    suppress[:, :-1] |= arr[:, :-1] < arr[:, 1:]
    suppress[1:, :] |= arr[1:, :] < arr[:-1, :]
    suppress[:-1, :] |= arr[:-1, :] < arr[1:, :]
    arr[suppress] = 0.0
    return arr