"""Gesture events consumed by :meth:`image_cropper.session.CropSession.apply`.

Hosts translate their gesture callbacks into these values and feed them to
the session one at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .geometry import Point, Size


class Corner(Enum):
    TOP_LEFT = "tl"
    TOP_RIGHT = "tr"
    BOTTOM_LEFT = "bl"
    BOTTOM_RIGHT = "br"

    @property
    def is_left(self) -> bool:
        return self in (Corner.TOP_LEFT, Corner.BOTTOM_LEFT)

    @classmethod
    def parse(cls, value: Corner | str) -> Corner:
        if isinstance(value, cls):
            return value
        key = (value or "").strip().lower()
        for corner in cls:
            if key in (corner.value, corner.name.lower()):
                return corner
        raise ValueError(f"Unknown corner: {value!r}")


@dataclass(frozen=True, slots=True)
class ZoomChanged:
    ratio: float


@dataclass(frozen=True, slots=True)
class ZoomEnded:
    pass


@dataclass(frozen=True, slots=True)
class PanChanged:
    translation: Point


@dataclass(frozen=True, slots=True)
class PanEnded:
    pass


@dataclass(frozen=True, slots=True)
class CropResize:
    corner: Corner
    delta: Point


@dataclass(frozen=True, slots=True)
class CropResizeEnded:
    pass


@dataclass(frozen=True, slots=True)
class ResetTransform:
    pass


@dataclass(frozen=True, slots=True)
class ViewportChanged:
    size: Size


@dataclass(frozen=True, slots=True)
class Commit:
    output_size: int | tuple[int, int] | None = None


@dataclass(frozen=True, slots=True)
class Cancel:
    pass


CropEvent = (
    ZoomChanged
    | ZoomEnded
    | PanChanged
    | PanEnded
    | CropResize
    | CropResizeEnded
    | ResetTransform
    | ViewportChanged
    | Commit
    | Cancel
)
