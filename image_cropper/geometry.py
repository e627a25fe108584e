"""Coordinate-mapping math for the crop engine.

Pure functions over small value types, no image or pyvips dependencies.
Viewport coordinates share one unit with pan offsets and the crop window
size; image coordinates are source pixels of the upright image.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# Float noise tolerated before rounding a mapped edge outward to the next pixel.
_PIXEL_EPSILON = 1e-6


@dataclass(frozen=True, slots=True)
class Size:
    width: float
    height: float

    @classmethod
    def of(cls, value: Size | tuple[float, float]) -> Size:
        if isinstance(value, Size):
            return value
        w, h = value
        return cls(float(w), float(h))

    @property
    def aspect(self) -> float:
        return self.width / self.height

    def scaled(self, factor: float) -> Size:
        return Size(self.width * factor, self.height * factor)

    def has_area(self) -> bool:
        return (
            math.isfinite(self.width)
            and math.isfinite(self.height)
            and self.width > 0
            and self.height > 0
        )


@dataclass(frozen=True, slots=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def of(cls, value: Point | tuple[float, float]) -> Point:
        if isinstance(value, Point):
            return value
        x, y = value
        return cls(float(x), float(y))

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)


ORIGIN = Point(0.0, 0.0)


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rect in (x, y, width, height) form."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return not (self.width > 0 and self.height > 0)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def intersected(self, other: Rect) -> Rect:
        """Return the overlap with *other*; an empty rect when they do not overlap."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return Rect(left, top, 0.0, 0.0)
        return Rect(left, top, right - left, bottom - top)

    def integral(self) -> Rect:
        """Round outward to whole pixels.

        Edges within a tiny epsilon of an integer snap to it, so a mapped edge
        of 750.0000000001 stays at 750 instead of growing a pixel.
        """
        if not all(math.isfinite(v) for v in self.as_tuple()):
            return Rect(0.0, 0.0, 0.0, 0.0)
        left = math.floor(self.x + _PIXEL_EPSILON)
        top = math.floor(self.y + _PIXEL_EPSILON)
        right = math.ceil(self.right - _PIXEL_EPSILON)
        bottom = math.ceil(self.bottom - _PIXEL_EPSILON)
        return Rect(float(left), float(top), float(right - left), float(bottom - top))


def aspect_fit(content: Size, container: Size) -> Size:
    """Largest size with *content*'s aspect ratio that fits inside *container*.

    Wider content is constrained by the container width, otherwise by its height.
    """
    content_aspect = content.aspect
    if content_aspect > container.aspect:
        return Size(container.width, container.width / content_aspect)
    return Size(container.height * content_aspect, container.height)


def centered_square(container: Size, side: float) -> Rect:
    center = Point(container.width / 2, container.height / 2)
    return Rect(center.x - side / 2, center.y - side / 2, side, side)


def map_crop_to_image(
    image: Size,
    viewport: Size,
    scale: float,
    offset: Point,
    crop_size: float,
) -> Rect:
    """Map the viewport-centered square crop window into source pixel coordinates.

    The image is displayed aspect-fit in the viewport, scaled by *scale* about
    its center and translated by *offset*. The returned rect is unrounded and
    may extend past the image bounds; callers intersect it themselves.

    Both sizes must have positive area.
    """
    displayed = aspect_fit(image, viewport)
    scaled = displayed.scaled(scale)

    view_center = Point(viewport.width / 2, viewport.height / 2)
    image_center = view_center + offset
    image_top_left = image_center - Point(scaled.width / 2, scaled.height / 2)

    crop_rect = centered_square(viewport, crop_size)

    # Width and height share one factor because the fit preserves aspect.
    image_scale = image.width / scaled.width
    return Rect(
        (crop_rect.x - image_top_left.x) * image_scale,
        (crop_rect.y - image_top_left.y) * image_scale,
        crop_rect.width * image_scale,
        crop_rect.height * image_scale,
    )


def clip_to_pixels(rect: Rect, image: Size) -> Rect:
    """Round *rect* outward to whole pixels and intersect it with the image bounds.

    Returns an empty rect when nothing of the image is covered.
    """
    if rect.is_empty:
        return Rect(rect.x, rect.y, 0.0, 0.0)
    bounds = Rect(0.0, 0.0, float(image.width), float(image.height))
    return rect.integral().intersected(bounds)
