from __future__ import annotations

from PySide6.QtCore import Property, QObject, Signal, Slot

from .errors import CropError
from .geometry import Point, Size
from .logger import get_logger
from .session import CropResult, CropSession

_logger = get_logger("qt_state")


class CropSessionState(QObject):
    """State bound by a QML or Widgets crop UI.

    Design:
    - Gesture recognizers live in the host UI; they call the slots below with
      cumulative values since the gesture started.
    - Python is authoritative for clamping the crop window and for the crop
      mapping; the UI only renders the exposed properties.
    """

    activeChanged = Signal(bool)
    scaleChanged = Signal(float)
    offsetXChanged = Signal(float)
    offsetYChanged = Signal(float)
    cropSizeChanged = Signal(float)

    cropped = Signal(object)  # Emits CropResult
    cancelled = Signal()
    failed = Signal(str)

    def __init__(self, session: CropSession, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._session = session
        self._scale = session.scale
        self._offset = session.offset
        self._crop_size = session.crop_size
        self._active = not session.closed

    @property
    def session(self) -> CropSession:
        return self._session

    # ---- read-only properties (mutate via slots) ----
    def _get_active(self) -> bool:
        return bool(self._active)

    active = Property(bool, _get_active, notify=activeChanged)  # type: ignore[arg-type]

    def _get_scale(self) -> float:
        return float(self._scale)

    scale = Property(float, _get_scale, notify=scaleChanged)  # type: ignore[arg-type]

    def _get_offset_x(self) -> float:
        return float(self._offset.x)

    offsetX = Property(float, _get_offset_x, notify=offsetXChanged)  # type: ignore[arg-type]

    def _get_offset_y(self) -> float:
        return float(self._offset.y)

    offsetY = Property(float, _get_offset_y, notify=offsetYChanged)  # type: ignore[arg-type]

    def _get_crop_size(self) -> float:
        return float(self._crop_size)

    cropSize = Property(float, _get_crop_size, notify=cropSizeChanged)  # type: ignore[arg-type]

    # ---- sync helpers ----
    def _sync(self) -> None:
        s = self._session
        if s.scale != self._scale:
            self._scale = s.scale
            self.scaleChanged.emit(self._scale)
        offset = s.offset
        if offset.x != self._offset.x:
            self.offsetXChanged.emit(offset.x)
        if offset.y != self._offset.y:
            self.offsetYChanged.emit(offset.y)
        self._offset = offset
        if s.crop_size != self._crop_size:
            self._crop_size = s.crop_size
            self.cropSizeChanged.emit(self._crop_size)
        active = not s.closed
        if active != self._active:
            self._active = active
            self.activeChanged.emit(active)

    # ---- gesture slots ----
    @Slot(float)
    def zoomChanged(self, ratio: float) -> None:
        self._session.on_zoom_changed(ratio)
        self._sync()

    @Slot()
    def zoomEnded(self) -> None:
        self._session.on_zoom_ended()
        self._sync()

    @Slot(float, float)
    def panChanged(self, dx: float, dy: float) -> None:
        self._session.on_pan_changed(Point(dx, dy))
        self._sync()

    @Slot()
    def panEnded(self) -> None:
        self._session.on_pan_ended()
        self._sync()

    @Slot(str, float, float)
    def cornerDragged(self, corner: str, dx: float, dy: float) -> None:
        self._session.on_crop_resize(corner, Point(dx, dy))
        self._sync()

    @Slot()
    def cornerReleased(self) -> None:
        self._session.on_crop_resize_ended()
        self._sync()

    @Slot(float, float)
    def viewportResized(self, width: float, height: float) -> None:
        self._session.on_viewport_changed(Size(width, height))

    @Slot()
    def resetTransform(self) -> None:
        self._session.reset()
        self._sync()

    @Slot(int)
    def commit(self, output_side: int) -> None:
        try:
            result: CropResult = self._session.commit(output_side if output_side > 0 else None)
        except CropError as e:
            _logger.error("commit failed: %s", e)
            self.failed.emit(str(e))
            return
        self._sync()
        self.cropped.emit(result)

    @Slot()
    def cancel(self) -> None:
        self._session.cancel()
        self._sync()
        self.cancelled.emit()
