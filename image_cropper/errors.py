"""Exceptions raised by the crop engine.

Degenerate crop geometry is not an error: commit falls back to the whole
normalized image instead of raising.
"""

from __future__ import annotations


class CropError(Exception):
    """Base class for crop engine failures. Terminal for the current session."""


class InvalidImageError(CropError, ValueError):
    """Source pixels or orientation cannot be decoded, or dimensions are zero."""


class EmptyViewportError(CropError):
    """Viewport has no area, so the aspect-fit mapping would divide by zero."""


class SessionClosedError(CropError):
    """An event was sent to a session that already committed or was cancelled."""
