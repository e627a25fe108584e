"""Pixel extraction and resampling using pyvips.

Pure functions over numpy buffers, no session state.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .logger import get_logger
from .source import _get_pyvips_module

_logger = get_logger("render")


def validate_crop_bounds(img_width: int, img_height: int, crop: tuple[int, int, int, int]) -> bool:
    """Validate that crop rectangle is within image bounds.

    Args:
        img_width: Image width
        img_height: Image height
        crop: (left, top, width, height) crop rectangle

    Returns:
        True if crop is valid, False otherwise
    """
    left, top, width, height = crop
    if left < 0 or top < 0:
        return False
    if width <= 0 or height <= 0:
        return False
    if left + width > img_width:
        return False
    return not top + height > img_height


def array_to_vips(pixels: np.ndarray) -> Any:
    pyvips = _get_pyvips_module()
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    h, w, bands = pixels.shape
    data = np.ascontiguousarray(pixels, dtype=np.uint8)
    return pyvips.Image.new_from_memory(data.tobytes(), w, h, bands, "uchar")


def vips_to_array(image: Any) -> np.ndarray:
    if image.format != "uchar":
        image = image.cast("uchar")
    mem = image.write_to_memory()
    return np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands).copy()


def resample(image: Any, width: int, height: int) -> Any:
    """Resize a pyvips image to exactly ``width`` x ``height``, ignoring aspect."""
    pyvips = _get_pyvips_module()
    if image.width == width and image.height == height:
        return image
    return image.thumbnail_image(width, height=height, size=pyvips.Size.FORCE)


def resize_array(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    return vips_to_array(resample(array_to_vips(pixels), int(width), int(height)))


def extract_and_resample(
    pixels: np.ndarray,
    crop: tuple[int, int, int, int],
    output_size: tuple[int, int],
) -> np.ndarray:
    """Cut ``crop`` out of ``pixels`` and resample it to ``output_size``.

    Args:
        pixels: (H, W, C) uint8 buffer of the upright image
        crop: (left, top, width, height) in pixel coordinates
        output_size: (width, height) of the result

    Raises:
        ValueError: if the crop does not lie inside the image
    """
    h, w = pixels.shape[:2]
    if not validate_crop_bounds(w, h, crop):
        _logger.error("Crop bounds %s invalid for image size %dx%d", crop, w, h)
        raise ValueError(f"Crop bounds {crop} invalid for image size {w}x{h}")

    out_w, out_h = output_size
    left, top, width, height = crop
    _logger.debug("extracting %s and resampling to %dx%d", crop, out_w, out_h)

    # Slicing the array avoids copying the full buffer into vips.
    region = pixels[top : top + height, left : left + width]
    return vips_to_array(resample(array_to_vips(region), out_w, out_h))
