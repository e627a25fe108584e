"""Source images for a crop session.

A :class:`SourceImage` wraps an ``uint8`` numpy buffer plus the orientation tag
it was stored with. Files and encoded bytes are decoded with pyvips.
"""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from typing import Any

import numpy as np

from .errors import InvalidImageError
from .geometry import Size
from .logger import get_logger
from .orientation import Orientation, normalize_pixels

_logger = get_logger("source")

RGB_CHANNELS = 3
MAX_CHANNELS = 4

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        _pyvips = pyvips
    return _pyvips


def _validate_pixels(pixels: Any) -> np.ndarray:
    if not isinstance(pixels, np.ndarray):
        raise InvalidImageError(f"Pixel buffer must be a numpy array, got {type(pixels).__name__}")
    if pixels.dtype != np.uint8:
        raise InvalidImageError(f"Pixel buffer must be uint8, got {pixels.dtype}")
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    if pixels.ndim != 3:
        raise InvalidImageError(f"Pixel buffer must be 2-D or 3-D, got shape {pixels.shape}")
    h, w, c = pixels.shape
    if w <= 0 or h <= 0:
        raise InvalidImageError(f"Image has zero dimensions: {w}x{h}")
    if not 1 <= c <= MAX_CHANNELS:
        raise InvalidImageError(f"Unsupported channel count: {c}")
    return pixels


@dataclass(frozen=True, slots=True, eq=False)
class SourceImage:
    """Immutable pixel buffer, shape (H, W, C), with its stored orientation.

    ``width`` and ``height`` describe the stored buffer; after
    :meth:`normalized` they describe the upright image.
    """

    pixels: np.ndarray
    orientation: Orientation = Orientation.UP

    def __post_init__(self) -> None:
        pixels = _validate_pixels(self.pixels).view()
        pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)
        object.__setattr__(self, "orientation", Orientation.parse(self.orientation))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    @property
    def size(self) -> Size:
        return Size(float(self.width), float(self.height))

    @property
    def is_upright(self) -> bool:
        return self.orientation is Orientation.UP

    def normalized(self) -> SourceImage:
        """Return an upright copy; the pixel data is physically re-rendered."""
        return SourceImage(normalize_pixels(self.pixels, self.orientation), Orientation.UP)


def _vips_to_array(image: Any) -> np.ndarray:
    """Flatten a pyvips image into an RGB uint8 numpy array."""
    with contextlib.suppress(Exception):
        image = image.colourspace("srgb")
    if image.hasalpha():
        image = image.flatten(background=[0] * (image.bands - 1))
    if image.bands > RGB_CHANNELS:
        image = image.extract_band(0, n=RGB_CHANNELS)
    elif image.bands < RGB_CHANNELS:
        image = image.bandjoin([image] * (RGB_CHANNELS - 1))
    if image.format != "uchar":
        image = image.cast("uchar")

    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    return array.copy()


def _read_orientation(image: Any) -> Orientation:
    try:
        if image.get_typeof("orientation") == 0:
            return Orientation.UP
        return Orientation.parse(int(image.get("orientation")))
    except InvalidImageError:
        _logger.warning("ignoring unknown EXIF orientation on decoded image")
        return Orientation.UP


def load_source_image(source: str | os.PathLike[str] | bytes) -> SourceImage:
    """Decode a file path or encoded bytes into a :class:`SourceImage`.

    The EXIF orientation tag is read but not applied; ``begin_session``
    normalizes it.

    Raises:
        InvalidImageError: if the data cannot be decoded.
    """
    pyvips = _get_pyvips_module()
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            image = pyvips.Image.new_from_buffer(bytes(source), "", access="sequential")
            label = f"<{len(source)} bytes>"
        else:
            label = os.fspath(source)
            image = pyvips.Image.new_from_file(label, access="sequential")
        orientation = _read_orientation(image)
        pixels = _vips_to_array(image)
    except pyvips.Error as e:
        _logger.debug("decode failed: %s", e)
        raise InvalidImageError(f"Cannot decode image: {e}") from e

    _logger.debug("loaded %s: %dx%d orientation=%s", label, pixels.shape[1], pixels.shape[0], orientation.name)
    return SourceImage(pixels, orientation)
