"""Bounded-size re-encoding using pyvips.

``compress`` lowers the lossy quality step by step until the encoded bytes
fit the budget, then tries one uniform downscale. It is best effort: the
result may still exceed the budget and callers decide whether to reject it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from .logger import get_logger
from .metrics import metrics
from .render import array_to_vips, resample
from .session import CropResult
from .settings import DEFAULT_SETTINGS, CropSettings
from .source import RGB_CHANNELS, SourceImage, _get_pyvips_module

_logger = get_logger("encoder")

CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}

_SUFFIXES = {
    "jpeg": ".jpg",
    "webp": ".webp",
}

# Tolerance when comparing float qualities against the floor.
_QUALITY_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class EncodedImage:
    data: bytes
    content_type: str
    quality: float
    width: int
    height: int
    downscaled: bool = False

    @property
    def byte_length(self) -> int:
        return len(self.data)


def _pixels_of(image: Any) -> np.ndarray:
    if isinstance(image, CropResult):
        return image.image
    if isinstance(image, SourceImage):
        return image.normalized().pixels
    if isinstance(image, np.ndarray):
        return image
    raise TypeError(f"Cannot encode {type(image).__name__}")


def _prepare(pixels: np.ndarray) -> Any:
    """Return an RGB pyvips image ready for lossy encoding."""
    image = array_to_vips(pixels)
    if image.bands in (2, 4):
        # Lossy formats here carry no alpha; flatten onto black.
        image = image.flatten(background=[0] * (image.bands - 1)).cast("uchar")
    if image.bands < RGB_CHANNELS:
        image = image.bandjoin([image] * (RGB_CHANNELS - 1)).copy(interpretation="srgb")
    return image


def _q(quality: float) -> int:
    return max(1, min(100, round(quality * 100)))


def _encode(image: Any, quality: float, fmt: str) -> bytes:
    metrics.inc("encoder.encode_attempts")
    data = image.write_to_buffer(_SUFFIXES[fmt], Q=_q(quality))
    metrics.observe("encoder.encoded_bytes", len(data))
    return bytes(data)


def encode_at_quality(pixels: np.ndarray, quality: float, fmt: str = "jpeg") -> bytes:
    """Encode *pixels* once at a quality in [0.0, 1.0]."""
    if fmt not in _SUFFIXES:
        raise ValueError(f"Unsupported format: {fmt!r}")
    return _encode(_prepare(pixels), quality, fmt)


def compress(image: Any, max_bytes: int, settings: CropSettings | None = None) -> EncodedImage | None:
    """Encode *image* at or under ``max_bytes`` where possible.

    Args:
        image: numpy (H, W, C) uint8 buffer, ``SourceImage`` or ``CropResult``
        max_bytes: byte budget
        settings: quality constants and output format

    Returns:
        The encoded image, or None if the image has no pixels or cannot be
        encoded. None is terminal for an upload; do not retry.
    """
    if max_bytes <= 0:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")
    s = settings or DEFAULT_SETTINGS
    pyvips = _get_pyvips_module()

    pixels = _pixels_of(image)
    if pixels.ndim not in (2, 3) or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        _logger.warning("nothing to encode: image shape %s", pixels.shape)
        metrics.inc("encoder.failed")
        return None

    fmt = s.encode_format
    with metrics.timed("encoder.compress_duration"):
        try:
            vimage = _prepare(pixels)
            quality = s.initial_quality
            data = _encode(vimage, quality, fmt)
            _logger.debug("encoded %dx%d at q=%.1f: %d bytes", vimage.width, vimage.height, quality, len(data))

            while len(data) > max_bytes and quality > s.quality_floor + _QUALITY_EPSILON:
                quality = max(s.quality_floor, round(quality - s.quality_step, 6))
                metrics.inc("encoder.quality_steps")
                data = _encode(vimage, quality, fmt)
                _logger.debug("re-encoded at q=%.1f: %d bytes", quality, len(data))

            downscaled = False
            if len(data) > max_bytes:
                ratio = math.sqrt(max_bytes / len(data))
                new_w = max(1, int(vimage.width * ratio))
                new_h = max(1, int(vimage.height * ratio))
                metrics.inc("encoder.downscale_passes")
                _logger.debug("over budget at quality floor; downscaling by %.3f to %dx%d", ratio, new_w, new_h)
                vimage = resample(vimage, new_w, new_h)
                quality = s.initial_quality
                data = _encode(vimage, quality, fmt)
                downscaled = True
        except pyvips.Error as e:
            _logger.error("encoding failed: %s", e, exc_info=True)
            metrics.inc("encoder.failed")
            return None

    if len(data) > max_bytes:
        _logger.warning("best effort result is %d bytes, over the %d byte budget", len(data), max_bytes)
    return EncodedImage(
        data=data,
        content_type=CONTENT_TYPES[fmt],
        quality=quality,
        width=int(vimage.width),
        height=int(vimage.height),
        downscaled=downscaled,
    )
