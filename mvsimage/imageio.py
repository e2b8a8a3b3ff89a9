"""Reading and writing of the raster formats used by the image pyramids.

Every reader returns a tuple ``(data, width, height)`` where ``data`` is a
flat ``uint8`` array holding the pixels row by row, channel-interleaved.
When ``fast`` is true only the size is read and ``data`` is empty.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

_WHITESPACE = b" \t\n\r\v\f"

_COLOR_SUFFIXES = (".ppm", ".jpg", ".png", ".tiff")
_GRAY_SUFFIXES = (".pgm", ".pbm")


class ImageFormatError(ValueError):
    """Raised when a file cannot be read as the requested image format."""


def complete_name(lhs, color):
    """Add the extension of an existing file to a base name.

    A name that already carries a three-letter extension is returned as is.
    Colour images try ppm, jpg, png and tiff; masks try pgm and pbm.  If no
    candidate exists the name is returned unchanged.
    """
    name = str(lhs)
    if len(name) >= 5 and name[-4] == ".":
        return name
    suffixes = _COLOR_SUFFIXES if color else _GRAY_SUFFIXES
    for suffix in suffixes:
        candidate = name + suffix
        if Path(candidate).is_file():
            return candidate
    return name


def _empty() -> np.ndarray:
    return np.zeros(0, dtype=np.uint8)


def _require_suffix(path, suffix: str) -> str:
    name = str(path)
    if not name.endswith(suffix):
        raise ImageFormatError(f"not a {suffix} file: {name}")
    return name


def _read_bytes(path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ImageFormatError(f"cannot open {path}: {exc}") from exc


class _NetpbmHeader:
    """Cursor over the header of a binary netpbm file."""

    def __init__(self, data: bytes, path: str):
        self.data = data
        self.pos = 0
        self.path = path

    def token(self) -> bytes:
        while self.pos < len(self.data) and self.data[self.pos] in _WHITESPACE:
            self.pos += 1
        start = self.pos
        while self.pos < len(self.data) and self.data[self.pos] not in _WHITESPACE:
            self.pos += 1
        if start == self.pos:
            raise ImageFormatError(f"truncated header: {self.path}")
        return self.data[start:self.pos]

    def integer(self) -> int:
        tok = self.token()
        try:
            return int(tok)
        except ValueError as exc:
            raise ImageFormatError(f"bad header value {tok!r}: {self.path}") from exc

    def skip_byte(self) -> None:
        self.pos += 1

    def skip_comments(self) -> None:
        while self.pos < len(self.data) and self.data[self.pos:self.pos + 1] == b"#":
            end = self.data.find(b"\n", self.pos)
            self.pos = len(self.data) if end < 0 else end + 1

    def rest(self) -> bytes:
        return self.data[self.pos:]


def _open_netpbm(path, magic: bytes) -> _NetpbmHeader:
    name = str(path)
    header = _NetpbmHeader(_read_bytes(name), name)
    found = header.token()
    header.skip_byte()
    if found != magic:
        raise ImageFormatError(
            f"only binary {magic.decode()} files are accepted: {name} {found!r}"
        )
    header.skip_comments()
    return header


def read_pbm_image(path, fast=False):
    """Read a binary (P4) bitmap; set bits become 0 and clear bits 255.

    Bits are taken as one continuous stream, without per-row padding.
    """
    name = _require_suffix(path, "pbm")
    header = _open_netpbm(name, b"P4")
    width = header.integer()
    height = header.integer()
    header.skip_byte()
    if fast:
        return _empty(), width, height
    count = width * height
    payload = np.frombuffer(header.rest(), dtype=np.uint8)
    bits = np.unpackbits(payload)
    if bits.shape[0] < count:
        raise ImageFormatError(f"truncated bitmap data: {name}")
    data = np.where(bits[:count] == 1, 0, 255).astype(np.uint8)
    return data, width, height


def write_pbm_image(path, image, width, height):
    """Write a binary (P4) bitmap; values below 127 become set bits."""
    count = width * height
    values = np.asarray(image, dtype=np.uint8).reshape(-1)
    if values.shape[0] < count:
        raise ValueError(f"image holds {values.shape[0]} values, need {count}")
    bits = (values[:count] < 127).astype(np.uint8)
    payload = np.packbits(bits).tobytes()
    Path(path).write_bytes(f"P4\n{width} {height}\n".encode() + payload)


def read_pgm_image(path, fast=False):
    """Read a binary (P5) greymap with one byte per pixel."""
    name = _require_suffix(path, "pgm")
    header = _open_netpbm(name, b"P5")
    width = header.integer()
    height = header.integer()
    header.integer()
    header.skip_byte()
    if fast:
        return _empty(), width, height
    count = width * height
    payload = header.rest()
    if len(payload) < count:
        raise ImageFormatError(f"truncated greymap data: {name}")
    data = np.frombuffer(payload[:count], dtype=np.uint8).copy()
    return data, width, height


def write_pgm_image(path, image, width, height):
    """Write a binary (P5) greymap."""
    _write_netpbm(path, b"P5", image, width, height, 1)


def write_ppm_image(path, image, width, height):
    """Write a binary (P6) RGB pixmap."""
    _write_netpbm(path, b"P6", image, width, height, 3)


def _write_netpbm(path, magic: bytes, image, width: int, height: int, channels: int):
    count = width * height * channels
    values = np.asarray(image, dtype=np.uint8).reshape(-1)
    if values.shape[0] < count:
        raise ValueError(f"image holds {values.shape[0]} values, need {count}")
    head = magic + f"\n{width} {height}\n255\n".encode()
    Path(path).write_bytes(head + values[:count].tobytes())


def _load(path, allowed: tuple[int, ...], fast: bool):
    name = str(path)
    try:
        with PILImage.open(name) as img:
            width, height = img.size
            if img.mode == "P":
                img = img.convert("RGB")
            elif img.mode == "1":
                img = img.convert("L")
            bands = len(img.getbands())
            if bands not in allowed and not (3 in allowed and bands > 3 and allowed[-1] == -1):
                raise ImageFormatError(
                    f"cannot handle {bands} components: {name}"
                )
            if fast:
                return _empty(), width, height
            if bands >= 3 and img.mode != "RGB":
                img = img.convert("RGB")
            elif bands == 1 and img.mode != "L":
                img = img.convert("L")
            data = np.asarray(img, dtype=np.uint8).reshape(-1).copy()
    except (OSError, UnidentifiedImageError) as exc:
        raise ImageFormatError(f"Couldn't read image {name}") from exc
    return data, width, height


def read_any_image(path, fast=False):
    """Read any colour image Pillow understands, as interleaved RGB."""
    return _load(path, (3, -1), fast)


def read_ppm_image(path, fast=False):
    """Read a netpbm file with a ``ppm`` suffix; one or three channels."""
    name = _require_suffix(path, "ppm")
    return _load(name, (1, 3), fast)


def read_jpeg_image(path, fast=False):
    """Read a JPEG file with a ``jpg`` suffix; one or three channels."""
    name = _require_suffix(path, "jpg")
    return _load(name, (1, 3), fast)


def write_jpeg_image(path, buffer, width, height, flip=False):
    """Write an interleaved RGB buffer as a JPEG of quality 100.

    With ``flip`` the rows are written bottom first.
    """
    count = width * height * 3
    values = np.asarray(buffer, dtype=np.uint8).reshape(-1)
    if values.shape[0] < count:
        raise ValueError(f"buffer holds {values.shape[0]} values, need {count}")
    pixels = values[:count].reshape(height, width, 3)
    if flip:
        pixels = pixels[::-1]
    PILImage.fromarray(np.ascontiguousarray(pixels)).save(
        str(path), format="JPEG", quality=100
    )