"""Mutable pan/zoom and crop-window state for one crop session.

Gestures report cumulative values since the gesture started, so each axis
keeps the committed value from before the gesture plus the in-progress
delta, and folds the delta in when the gesture ends.
"""

from __future__ import annotations

import math

from .geometry import ORIGIN, Point
from .logger import get_logger

_logger = get_logger("transform")


class TransformState:
    """Committed and in-gesture scale/offset of the displayed image."""

    def __init__(self) -> None:
        self.committed_scale: float = 1.0
        self.delta_scale: float = 1.0
        self.committed_offset: Point = ORIGIN
        # Absolute offset while a pan is in progress, None otherwise.
        self.delta_offset: Point | None = None

    @property
    def scale(self) -> float:
        return self.committed_scale * self.delta_scale

    @property
    def offset(self) -> Point:
        return self.delta_offset if self.delta_offset is not None else self.committed_offset

    def zoom(self, multiplier: float) -> bool:
        """Set the gesture ratio; returns False when the value is ignored."""
        m = float(multiplier)
        if not math.isfinite(m) or m <= 0.0:
            _logger.debug("ignoring zoom multiplier %r", multiplier)
            return False
        self.delta_scale = m
        return True

    def end_zoom(self) -> None:
        self.committed_scale *= self.delta_scale
        self.delta_scale = 1.0

    def pan(self, translation: Point) -> None:
        self.delta_offset = self.committed_offset + translation

    def end_pan(self) -> None:
        self.committed_offset = self.offset
        self.delta_offset = None

    def reset(self) -> None:
        self.committed_scale = 1.0
        self.delta_scale = 1.0
        self.committed_offset = ORIGIN
        self.delta_offset = None

    def __repr__(self) -> str:
        return f"TransformState(scale={self.scale:.4f}, offset=({self.offset.x:.2f}, {self.offset.y:.2f}))"


class CropWindow:
    """Side length of the square, viewport-centered crop window."""

    def __init__(self, size: float, min_size: float, max_size: float) -> None:
        self.min_size = float(min_size)
        self.max_size = float(max_size)
        self.size = self._clamp(size)
        self.initial_size: float | None = None

    def _clamp(self, v: float) -> float:
        return max(self.min_size, min(self.max_size, float(v)))

    def resize(self, drag_x: float, drag_y: float, left_corner: bool) -> float:
        """Apply a cumulative corner drag and return the new size.

        Horizontal and vertical drag are averaged into one scalar; left corners
        invert the horizontal component.
        """
        if self.initial_size is None:
            self.initial_size = self.size
        sign = -1.0 if left_corner else 1.0
        change = (drag_x * sign + drag_y) / 2
        self.size = self._clamp(self.initial_size + change)
        return self.size

    def end_resize(self) -> None:
        self.initial_size = None
