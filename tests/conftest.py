"""Pytest configuration.

The optional Qt bridge tests create QObjects. When PySide6 is installed a
single ``QApplication`` is created for the whole session as early as possible
and shut down at the end. Everything else runs without Qt.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    global _APP

    app = QApplication.instance()
    _APP = app if app is not None else QApplication([])


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    app = QApplication.instance()
    if app is None:
        return
    app.quit()
    app.processEvents()


@pytest.fixture
def gradient_rgb():
    """Return a factory for (H, W, 3) uint8 buffers with a distinct value per pixel column/row."""

    def make(width: int, height: int) -> np.ndarray:
        out = np.empty((height, width, 3), dtype=np.uint8)
        out[:, :, 0] = (np.arange(width) * 255 // max(1, width - 1)).astype(np.uint8)
        out[:, :, 1] = (np.arange(height) * 255 // max(1, height - 1)).astype(np.uint8)[:, np.newaxis]
        out[:, :, 2] = 128
        return out

    return make


@pytest.fixture
def noise_rgb():
    """Random RGB noise; encodes poorly, so JPEG size tracks quality closely."""

    def make(width: int, height: int, seed: int = 0) -> np.ndarray:
        rng = np.random.default_rng(seed)
        return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)

    return make
