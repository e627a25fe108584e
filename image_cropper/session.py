"""Interactive crop session.

A session owns one upright source image, the viewport it is displayed in,
the pan/zoom transform and the crop window. Hosts feed it gesture events
(directly through the ``on_*`` methods or as event values through
:meth:`CropSession.apply`) and finish it with exactly one :meth:`commit` or
:meth:`cancel`.

Not safe under concurrent mutation; callers serialize events.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np

from . import events as ev
from .errors import EmptyViewportError, SessionClosedError
from .geometry import Point, Rect, Size, clip_to_pixels, map_crop_to_image
from .logger import get_logger
from .metrics import metrics
from .render import extract_and_resample
from .settings import DEFAULT_SETTINGS, CropSettings
from .source import SourceImage
from .transform import CropWindow, TransformState

_logger = get_logger("session")


@dataclass(frozen=True, slots=True, eq=False)
class CropResult:
    """Outcome of a commit.

    ``region`` is in source pixel coordinates of the upright image. When
    ``fallback`` is set the mapped crop covered none of the image and ``image``
    is the whole normalized source, not resampled.
    """

    region: Rect
    image: np.ndarray
    output_size: tuple[int, int]
    fallback: bool = False

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


def _resolve_output_size(value: int | tuple[int, int] | None, fallback: float) -> tuple[int, int]:
    if value is None:
        side = max(1, round(fallback))
        return side, side
    if isinstance(value, (int, float)):
        w = h = int(value)
    else:
        w, h = (int(v) for v in value)
    if w <= 0 or h <= 0:
        raise ValueError(f"output size must be positive, got {value!r}")
    return w, h


class CropSession:
    """Pan/zoom/crop-window state over one normalized image."""

    def __init__(
        self,
        image: SourceImage,
        viewport: Size | tuple[float, float],
        settings: CropSettings | None = None,
    ) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.image = image if image.is_upright else image.normalized()
        self.viewport = Size.of(viewport)
        self.transform = TransformState()
        default_size = min(self.viewport.width, self.viewport.height) * self.settings.default_crop_fraction
        if not math.isfinite(default_size):
            default_size = self.settings.min_crop_size
        self.crop_window = CropWindow(default_size, self.settings.min_crop_size, self.settings.max_crop_size)
        self._closed = False
        self._handlers: dict[type, Callable[[Any], Any]] = {
            ev.ZoomChanged: lambda e: self.on_zoom_changed(e.ratio),
            ev.ZoomEnded: lambda e: self.on_zoom_ended(),
            ev.PanChanged: lambda e: self.on_pan_changed(e.translation),
            ev.PanEnded: lambda e: self.on_pan_ended(),
            ev.CropResize: lambda e: self.on_crop_resize(e.corner, e.delta),
            ev.CropResizeEnded: lambda e: self.on_crop_resize_ended(),
            ev.ResetTransform: lambda e: self.reset(),
            ev.ViewportChanged: lambda e: self.on_viewport_changed(e.size),
            ev.Commit: lambda e: self.commit(e.output_size),
            ev.Cancel: lambda e: self.cancel(),
        }

    # ---- read-only state ----
    @property
    def scale(self) -> float:
        return self.transform.scale

    @property
    def offset(self) -> Point:
        return self.transform.offset

    @property
    def crop_size(self) -> float:
        return self.crop_window.size

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("crop session already finished")

    # ---- gesture events ----
    def on_zoom_changed(self, multiplier: float) -> None:
        self._ensure_open()
        self.transform.zoom(multiplier)

    def on_zoom_ended(self) -> None:
        self._ensure_open()
        self.transform.end_zoom()

    def on_pan_changed(self, translation: Point | tuple[float, float]) -> None:
        self._ensure_open()
        self.transform.pan(Point.of(translation))

    def on_pan_ended(self) -> None:
        self._ensure_open()
        self.transform.end_pan()

    def on_crop_resize(self, corner: ev.Corner | str, drag_delta: Point | tuple[float, float]) -> float:
        self._ensure_open()
        c = ev.Corner.parse(corner)
        d = Point.of(drag_delta)
        return self.crop_window.resize(d.x, d.y, c.is_left)

    def on_crop_resize_ended(self) -> None:
        self._ensure_open()
        self.crop_window.end_resize()

    def on_viewport_changed(self, viewport: Size | tuple[float, float]) -> None:
        self._ensure_open()
        self.viewport = Size.of(viewport)

    def reset(self) -> None:
        self._ensure_open()
        self.transform.reset()

    def apply(self, event: ev.CropEvent) -> CropResult | None:
        """Consume one event; returns the result for ``Commit``, else None."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported crop event: {event!r}")
        result = handler(event)
        return result if isinstance(result, CropResult) else None

    # ---- commit / cancel ----
    def compute_crop_rect(self) -> Rect:
        """Map the crop window into source pixels without rounding or clipping.

        Raises:
            EmptyViewportError: if the viewport or image has no area
        """
        if not self.viewport.has_area():
            raise EmptyViewportError(f"viewport has no area: {self.viewport.width}x{self.viewport.height}")
        if not self.image.size.has_area():
            raise EmptyViewportError("image aspect cannot be computed")
        return map_crop_to_image(
            self.image.size,
            self.viewport,
            self.transform.scale,
            self.transform.offset,
            self.crop_window.size,
        )

    def commit(self, output_size: int | tuple[int, int] | None = None) -> CropResult:
        """Crop the upright image to what the crop window encloses and close the session."""
        self._ensure_open()
        requested = self.settings.default_output_size if output_size is None else output_size
        target = _resolve_output_size(requested, self.crop_window.size)
        with metrics.timed("session.commit_duration"):
            mapped = self.compute_crop_rect()
            region = clip_to_pixels(mapped, self.image.size)
            if region.is_empty:
                _logger.warning(
                    "crop %s misses the %dx%d image; returning it whole",
                    mapped.as_tuple(),
                    self.image.width,
                    self.image.height,
                )
                metrics.inc("session.fallback")
                result = CropResult(
                    region=Rect(0.0, 0.0, float(self.image.width), float(self.image.height)),
                    image=np.array(self.image.pixels),
                    output_size=(self.image.width, self.image.height),
                    fallback=True,
                )
            else:
                crop = tuple(int(v) for v in region.as_tuple())
                pixels = extract_and_resample(self.image.pixels, crop, target)  # type: ignore[arg-type]
                result = CropResult(region=region, image=pixels, output_size=target)
        self._closed = True
        metrics.inc("session.committed")
        _logger.debug("committed %s: region=%s output=%s", self.transform, result.region.as_tuple(), result.output_size)
        return result

    def cancel(self) -> None:
        self._ensure_open()
        self._closed = True
        metrics.inc("session.cancelled")
        _logger.debug("crop session cancelled")


def begin_session(
    image: SourceImage,
    viewport: Size | tuple[float, float],
    settings: CropSettings | None = None,
) -> CropSession:
    """Start a crop session; the image is normalized upright here, once.

    Raises:
        InvalidImageError: if the pixel buffer or orientation is unusable
    """
    if not isinstance(image, SourceImage):
        image = SourceImage(image)
    session = CropSession(image, viewport, settings)
    metrics.inc("session.begun")
    _logger.debug(
        "session begun: image=%dx%d viewport=%sx%s crop=%.1f",
        session.image.width,
        session.image.height,
        session.viewport.width,
        session.viewport.height,
        session.crop_size,
    )
    return session
