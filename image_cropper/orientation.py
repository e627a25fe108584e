"""Orientation tags and upright normalization of pixel buffers."""

from __future__ import annotations

from enum import IntEnum

import numpy as np

from .errors import InvalidImageError


class Orientation(IntEnum):
    """Stored pixel orientation, valued as the EXIF orientation tag."""

    UP = 1
    UP_MIRRORED = 2
    DOWN = 3
    DOWN_MIRRORED = 4
    LEFT_MIRRORED = 5
    RIGHT = 6
    RIGHT_MIRRORED = 7
    LEFT = 8

    @property
    def swaps_axes(self) -> bool:
        return self >= Orientation.LEFT_MIRRORED

    @classmethod
    def parse(cls, value: Orientation | int | str | None) -> Orientation:
        if value is None:
            return cls.UP
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            if key in cls.__members__:
                return cls[key]
            if key.isdigit():
                value = int(key)
            else:
                raise InvalidImageError(f"Unknown orientation: {value!r}")
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidImageError(f"Unknown orientation: {value!r}")
        try:
            return cls(int(value))
        except ValueError:
            raise InvalidImageError(f"Unknown orientation: {value!r}") from None


def normalize_pixels(pixels: np.ndarray, orientation: Orientation | int | str | None) -> np.ndarray:
    """Re-render *pixels* so row 0 is the visual top and column 0 the visual left.

    Returns a new C-contiguous array. An already upright buffer comes back
    pixel-identical.
    """
    o = Orientation.parse(orientation)
    if o is Orientation.UP:
        out = pixels
    elif o is Orientation.UP_MIRRORED:
        out = pixels[:, ::-1]
    elif o is Orientation.DOWN:
        out = pixels[::-1, ::-1]
    elif o is Orientation.DOWN_MIRRORED:
        out = pixels[::-1, :]
    elif o is Orientation.LEFT_MIRRORED:
        out = np.swapaxes(pixels, 0, 1)
    elif o is Orientation.RIGHT:
        out = np.rot90(pixels, k=-1)
    elif o is Orientation.RIGHT_MIRRORED:
        out = np.swapaxes(pixels, 0, 1)[::-1, ::-1]
    else:
        out = np.rot90(pixels, k=1)
    return np.array(out, order="C")
