"""Pinhole and orthographic camera model with multi-level projections."""

from __future__ import annotations

import math
from enum import IntEnum
from pathlib import Path
from typing import Sequence

import numpy as np

_CLAMP_MIN = float(-(2**31) + 3)
_CLAMP_MAX = float(2**31 - 1 - 3)
_BEHIND = 0xFFFF


class CameraError(Exception):
    """Raised for malformed camera files or unsupported camera operations."""


class TxtType(IntEnum):
    """Layout of the parameters in a camera text file."""

    CONTOUR = 0
    CONTOUR2 = 2
    CONTOUR3 = 3


def _vec(values, size: int | None = None) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if size is not None and arr.shape[0] != size:
        raise CameraError(f"expected {size} components, got {arr.shape[0]}")
    return arr


def _unitize(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    return v / n if n != 0.0 else v


def _invert3(a: np.ndarray) -> np.ndarray:
    try:
        return np.linalg.inv(a)
    except np.linalg.LinAlgError as exc:
        raise CameraError("projection matrix is singular") from exc


class Camera:
    """Camera parameters and the projection matrices derived from them."""

    def __init__(self):
        self.name = ""
        self.txt_type: TxtType | None = None
        self.intrinsics = np.zeros(6)
        self.extrinsics = np.zeros(6)
        self.projection: list[np.ndarray] = []
        self.center = np.zeros(4)
        self.oaxis = np.zeros(4)
        self.xaxis = np.zeros(3)
        self.yaxis = np.zeros(3)
        self.zaxis = np.zeros(3)
        self.ipscale = 1.0
        self.max_level = 1
        self.axes_scale = 1.0

    # ------------------------------------------------------------------
    def load(self, path, max_level=1):
        """Read a camera text file and compute all derived quantities."""
        if max_level < 1:
            raise CameraError(f"max_level must be at least 1, got {max_level}")
        self.name = str(path)
        self.max_level = max_level
        tokens = Path(path).read_text().split()
        if not tokens or tokens[0] not in TxtType.__members__:
            raise CameraError("Unrecognizable txt format")
        self.txt_type = TxtType[tokens[0]]
        numbers = tokens[1:13]
        if len(numbers) < 12:
            raise CameraError("camera file holds fewer than 12 parameters")
        try:
            values = [float(tok) for tok in numbers]
        except ValueError as exc:
            raise CameraError(f"bad camera parameter: {exc}") from exc
        self.intrinsics = np.array(values[:6])
        self.extrinsics = np.array(values[6:])
        self.update_camera()

    def update_projection(self):
        """Rebuild the projection matrix of every pyramid level."""
        base = self.set_projection(self.intrinsics, self.extrinsics, self.txt_type)
        levels = [base]
        for _ in range(1, self.max_level):
            nxt = levels[-1].copy()
            nxt[0] /= 2.0
            nxt[1] /= 2.0
            levels.append(nxt)
        self.projection = levels

    def update_camera(self):
        """Recompute projections, optical center, axes and image-plane scale."""
        self.update_projection()
        p = self.projection[0]

        row = p[2]
        length = float(np.linalg.norm(row[:3]))
        with np.errstate(divide="ignore", invalid="ignore"):
            self.oaxis = row / length

        self.center = self._optical_center()

        self.zaxis = self.oaxis[:3].copy()
        xaxis = p[0][:3].copy()
        self.yaxis = _unitize(np.cross(self.zaxis, xaxis))
        self.xaxis = np.cross(self.yaxis, self.zaxis)

        scale = (float(np.linalg.norm(p[0][:3])) + float(np.linalg.norm(p[1][:3]))) / 2.0
        self.ipscale = scale if scale != 0.0 else 1.0

    def _is_orthographic(self) -> bool:
        return not np.any(self.projection[0][2][:3])

    def _optical_center(self) -> np.ndarray:
        p = self.projection[0]
        if self._is_orthographic():
            direction = _unitize(np.cross(p[0][:3], p[1][:3]))
            return np.append(direction, 0.0)
        solved = _invert3(p[:, :3]) @ (-p[:, 3])
        return np.append(solved, 1.0)

    # ------------------------------------------------------------------
    def write(self, path):
        """Write the camera parameters in the file's original layout."""
        fmt = lambda v: f"{float(v):g}"  # noqa: E731
        i = [fmt(v) for v in self.intrinsics]
        e = [fmt(v) for v in self.extrinsics]
        if self.txt_type == TxtType.CONTOUR:
            text = (
                "CONTOUR\n"
                f"{i[0]} {i[1]} {i[2]} {i[3]}\n"
                f"{i[4]} {i[5]} {e[0]} {e[1]}\n"
                f"{e[2]} {e[3]} {e[4]} {e[5]}\n"
            )
        elif self.txt_type in (TxtType.CONTOUR2, TxtType.CONTOUR3):
            text = (
                f"{self.txt_type.name}\n"
                + "".join(f"{v} " for v in i)
                + "\n"
                + "".join(f"{v} " for v in e)
                + "\n"
            )
        else:
            raise CameraError(f"Unrecognizable format: {self.txt_type}")
        Path(path).write_text(text)

    # ------------------------------------------------------------------
    def project(self, coord, level=0):
        """Project a homogeneous 3D point to image coordinates (x, y, 1)."""
        v = self.projection[level] @ _vec(coord, 4)
        if v[2] <= 0.0:
            return np.array([-float(_BEHIND), -float(_BEHIND), -1.0])
        v = v / v[2]
        v[0] = min(max(v[0], _CLAMP_MIN), _CLAMP_MAX)
        v[1] = min(max(v[1], _CLAMP_MIN), _CLAMP_MAX)
        return v

    def mult(self, coord, level=0):
        """Multiply a homogeneous point by the projection matrix."""
        return self.projection[level] @ _vec(coord, 4)

    # ------------------------------------------------------------------
    @staticmethod
    def set_projection(intrinsics, extrinsics, txt_type):
        """Build the 3x4 projection matrix from compact camera parameters."""
        try:
            kind = TxtType(txt_type)
        except ValueError as exc:
            raise CameraError(f"Impossible setProjection: {txt_type}") from exc
        params = np.concatenate([_vec(intrinsics, 6), _vec(extrinsics, 6)])

        if kind == TxtType.CONTOUR:
            return params.reshape(3, 4).copy()
        if kind == TxtType.CONTOUR2:
            k = np.zeros((4, 4))
            k[0, 0], k[1, 1] = params[0], params[1]
            k[0, 1], k[0, 2] = params[2], params[3]
            k[1, 2] = params[4]
            k[2, 2] = k[3, 3] = 1.0
            return (k @ Camera.q2proj(params[6:]))[:3].copy()
        sub = np.array([params[0], params[1], params[2], *params[6:12]])
        return Camera.set_projection_sub(sub, 0)

    @staticmethod
    def set_projection_sub(params, level=0):
        """Projection from (fovx, width, height, tx, ty, tz, rx, ry, rz) in degrees."""
        p = _vec(params, 9)
        rx, ry, rz = (math.radians(a) for a in p[6:9])
        fovx = math.radians(p[0])
        f = p[1] / 2.0 / math.tan(fovx / 2.0)

        k = np.diag([f, f, -1.0])
        trans = np.array([[1.0, 0.0, p[1] / 2.0], [0.0, -1.0, p[2] / 2.0], [0.0, 0.0, 1.0]])
        k = trans @ k

        rot_x = np.array(
            [[1.0, 0.0, 0.0], [0.0, math.cos(rx), -math.sin(rx)], [0.0, math.sin(rx), math.cos(rx)]]
        )
        rot_y = np.array(
            [[math.cos(ry), 0.0, math.sin(ry)], [0.0, 1.0, 0.0], [-math.sin(ry), 0.0, math.cos(ry)]]
        )
        rot_z = np.array(
            [[math.cos(rz), -math.sin(rz), 0.0], [math.sin(rz), math.cos(rz), 0.0], [0.0, 0.0, 1.0]]
        )
        r = rot_x.T @ rot_y.T @ rot_z.T
        t = p[3:6]

        proj = np.empty((3, 4))
        proj[:, :3] = k @ r
        proj[:, 3] = -(k @ (r @ t))
        scale = 1 << level
        proj[0] /= scale
        proj[1] /= scale
        return proj

    @staticmethod
    def proj2q(mat):
        """Decompose a 4x4 rigid transform into three angles (degrees) and a translation."""
        m = np.asarray(mat, dtype=np.float64)
        q = [0.0] * 6
        q[3], q[4], q[5] = float(m[0, 3]), float(m[1, 3]), float(m[2, 3])
        if m[2, 0] == 1.0:
            q[1] = -math.pi / 2.0
            q[0] = math.atan2(-m[0, 1], m[1, 1])
        elif m[2, 0] == -1.0:
            q[1] = math.pi / 2.0
            q[0] = math.atan2(m[0, 1], m[1, 1])
        else:
            q[1] = math.asin(-m[2, 0])
            s = 1.0 if math.cos(q[1]) > 0.0 else -1.0
            q[0] = math.atan2(m[2, 1] * s, m[2, 2] * s)
            q[2] = math.atan2(m[1, 0] * s, m[0, 0] * s)
        for i in range(3):
            angle = math.degrees(q[i])
            if abs(angle) > 180.0:
                angle = angle - 360.0 if angle > 0 else angle + 360.0
            q[i] = angle
        return q

    @staticmethod
    def q2proj(q):
        """Build a 4x4 rigid transform from three angles (degrees) and a translation."""
        v = _vec(q, 6)
        a, b, g = (math.radians(x) for x in v[:3])
        s1, s2, s3 = math.sin(a), math.sin(b), math.sin(g)
        c1, c2, c3 = math.cos(a), math.cos(b), math.cos(g)
        return np.array(
            [
                [c2 * c3, c3 * s2 * s1 - s3 * c1, c3 * s2 * c1 + s3 * s1, v[3]],
                [s3 * c2, s3 * s2 * s1 + c3 * c1, s3 * s2 * c1 - c3 * s1, v[4]],
                [-s2, c2 * s1, c2 * c1, v[5]],
                [0.0, 0.0, 0.0, 1.0],
            ]
        )

    # ------------------------------------------------------------------
    def get_scale(self, coord, level=0):
        """World-space size of one pixel at the given point and level."""
        if self.max_level <= level:
            raise CameraError(f"Level is not within a range: {level} {self.max_level}")
        factor = 1 << level
        p = self.projection[0]
        if self._is_orthographic():
            mean = (float(np.linalg.norm(p[0][:3])) + float(np.linalg.norm(p[1][:3]))) / 2.0
            return factor / mean
        ray = _vec(coord, 4) - self.center
        return float(np.linalg.norm(ray)) * factor / self.ipscale

    def get_paxes(self, coord, normal, level=0):
        """Tangent axes at a point whose projections span axes_scale pixels."""
        c = _vec(coord, 4)
        pscale = self.get_scale(c, level)
        normal3 = _vec(normal)[:3]
        yaxis3 = _unitize(np.cross(normal3, self.xaxis))
        xaxis3 = np.cross(yaxis3, normal3)
        pxaxis = np.append(xaxis3, 0.0) * pscale
        pyaxis = np.append(yaxis3, 0.0) * pscale
        origin = self.project(c, level)
        xdis = float(np.linalg.norm(self.project(c + pxaxis, level) - origin))
        ydis = float(np.linalg.norm(self.project(c + pyaxis, level) - origin))
        with np.errstate(divide="ignore", invalid="ignore"):
            pxaxis = pxaxis * (self.axes_scale / np.float64(xdis))
            pyaxis = pyaxis * (self.axes_scale / np.float64(ydis))
        return pxaxis, pyaxis

    def compute_distance(self, point):
        """Euclidean distance from the optical center to a point."""
        d = _vec(point)[:3] - self.center[:3]
        return float(np.linalg.norm(d))

    def compute_depth(self, point):
        """Depth of a point along the viewing direction."""
        p = _vec(point, 4)
        if self._is_orthographic():
            return float(-(self.center @ p))
        return float(self.oaxis @ p)

    def compute_depth_dif(self, lhs, rhs):
        """Depth difference between two points along the viewing direction."""
        d = _vec(lhs, 4) - _vec(rhs, 4)
        if self._is_orthographic():
            return float(-(self.center @ d))
        return float(self.oaxis @ d)

    def intersect(self, coord, abcd):
        """Where the viewing ray through coord meets the plane abcd."""
        c = _vec(coord, 4)
        plane = _vec(abcd, 4)
        ray = self.center - c
        a = float(c @ plane)
        b = float(ray @ plane)
        if b == 0.0:
            return np.array([0.0, 0.0, 0.0, -1.0])
        return c - a / b * ray

    def intersect_ray(self, coord, abcd):
        """Intersection of the unit ray from the center through coord with abcd.

        Returns the intersection point and its signed distance from coord.
        """
        c = _vec(coord, 4)
        plane = _vec(abcd, 4)
        ray = _unitize(c - self.center)
        a = float(c @ plane)
        b = float(ray @ plane)
        if b == 0.0:
            return np.array([0.0, 0.0, 0.0, -1.0]), float(_BEHIND)
        distance = -a / b
        return c + distance * ray, distance

    def unproject(self, icoord, level=0):
        """3D point whose product with the projection matrix equals icoord."""
        p = self.projection[level]
        b = _vec(icoord, 3) - p[:, 3]
        x = _invert3(p[:, :3]) @ b
        return np.append(x, 1.0)

    # ------------------------------------------------------------------
    def _require_contour2(self, what: str):
        if self.txt_type != TxtType.CONTOUR2:
            raise CameraError(f"{what} not supported for txtType: {self.txt_type}")

    def k_matrix(self):
        """Intrinsic 3x3 matrix (CONTOUR2 cameras only)."""
        self._require_contour2("K")
        i = self.intrinsics
        k = np.zeros((3, 3))
        k[0, 0], k[1, 1], k[0, 1] = i[0], i[1], i[2]
        k[0, 2], k[1, 2], k[2, 2] = i[3], i[4], 1.0
        return k

    def rt_matrix(self):
        """Extrinsic 4x4 rigid transform (CONTOUR2 cameras only)."""
        self._require_contour2("RT")
        return self.q2proj(self.extrinsics)

    def rotation(self):
        """Extrinsic 3x3 rotation (CONTOUR2 cameras only)."""
        self._require_contour2("R")
        return self.q2proj(self.extrinsics)[:3, :3].copy()


def compute_epd(f, p0, p1):
    """Distance of p0 from the epipolar line of p1 under fundamental matrix f."""
    line = np.asarray(f, dtype=np.float64) @ _vec(p1, 3)
    length = math.hypot(line[0], line[1])
    if length == 0.0:
        return 0.0
    return abs(float((line / length) @ _vec(p0, 3)))


def fundamental_matrix(lhs: Camera, rhs: Camera, level=0):
    """Fundamental matrix relating image points of lhs (rows) and rhs (columns)."""
    p0 = lhs.projection[level]
    p1 = rhs.projection[level]
    pairs_l: Sequence[tuple[int, int]] = ((1, 2), (2, 0), (0, 1))
    pairs_r: Sequence[tuple[int, int]] = ((1, 2), (2, 0), (0, 1))
    f = np.empty((3, 3))
    for y, (a, b) in enumerate(pairs_l):
        for x, (c, d) in enumerate(pairs_r):
            f[y, x] = np.linalg.det(np.array([p0[a], p0[b], p1[c], p1[d]]))
    return f