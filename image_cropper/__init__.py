"""Interactive image-crop transform engine and bounded-size re-encoder.

Keep this module lightweight: it must not import Qt. The optional QObject
bridge lives in ``image_cropper.qt_state``.

Usage:
    from image_cropper import begin_session, compress, load_source_image

    session = begin_session(load_source_image("photo.jpg"), (300, 300))
    session.on_zoom_changed(1.5)
    session.on_zoom_ended()
    result = session.commit(300)
    encoded = compress(result, 200_000)
"""

from .encoder import EncodedImage, compress, encode_at_quality
from .errors import CropError, EmptyViewportError, InvalidImageError, SessionClosedError
from .events import (
    Cancel,
    Commit,
    Corner,
    CropResize,
    CropResizeEnded,
    PanChanged,
    PanEnded,
    ResetTransform,
    ViewportChanged,
    ZoomChanged,
    ZoomEnded,
)
from .geometry import Point, Rect, Size
from .orientation import Orientation
from .session import CropResult, CropSession, begin_session
from .settings import CropSettings, load_settings
from .source import SourceImage, load_source_image

__all__ = [
    "Cancel",
    "Commit",
    "Corner",
    "CropError",
    "CropResize",
    "CropResizeEnded",
    "CropResult",
    "CropSession",
    "CropSettings",
    "EmptyViewportError",
    "EncodedImage",
    "InvalidImageError",
    "Orientation",
    "PanChanged",
    "PanEnded",
    "Point",
    "Rect",
    "ResetTransform",
    "SessionClosedError",
    "Size",
    "SourceImage",
    "ViewportChanged",
    "ZoomChanged",
    "ZoomEnded",
    "begin_session",
    "compress",
    "encode_at_quality",
    "load_settings",
    "load_source_image",
]
