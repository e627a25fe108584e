from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

pytest.importorskip("pyvips")

from image_cropper.errors import InvalidImageError
from image_cropper.orientation import Orientation
from image_cropper.session import begin_session
from image_cropper.source import load_source_image


def _write_jpeg(path: Path, width: int, height: int, orientation: int | None = None) -> Path:
    Image = pytest.importorskip("PIL.Image")
    img = Image.new("RGB", (width, height), (200, 40, 40))
    if orientation is None:
        img.save(path, format="JPEG", quality=95)
    else:
        exif = Image.Exif()
        exif[0x0112] = orientation
        img.save(path, format="JPEG", quality=95, exif=exif)
    return path


def test_load_from_file_reads_orientation_without_applying_it(tmp_path: Path) -> None:
    path = _write_jpeg(tmp_path / "rotated.jpg", 40, 20, orientation=6)

    src = load_source_image(path)

    assert src.orientation is Orientation.RIGHT
    assert (src.width, src.height) == (40, 20)
    assert src.pixels.dtype == np.uint8
    assert src.channels == 3

    session = begin_session(src, (300, 300))
    assert (session.image.width, session.image.height) == (20, 40)


def test_load_from_bytes(tmp_path: Path) -> None:
    data = _write_jpeg(tmp_path / "plain.jpg", 16, 12).read_bytes()

    src = load_source_image(data)

    assert src.orientation is Orientation.UP
    assert (src.width, src.height) == (16, 12)


def test_undecodable_bytes_are_rejected() -> None:
    with pytest.raises(InvalidImageError):
        load_source_image(b"definitely not an image")


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(InvalidImageError):
        load_source_image(tmp_path / "missing.jpg")


@pytest.mark.parametrize("bands", [1, 2])
def test_grey_and_grey_alpha_decode_to_rgb(bands: int) -> None:
    import pyvips

    from image_cropper.source import _vips_to_array

    data = np.full((6, 5, bands), 200, dtype=np.uint8)
    image = pyvips.Image.new_from_memory(data.tobytes(), 5, 6, bands, "uchar").copy(interpretation="multiband")

    pixels = _vips_to_array(image)

    assert pixels.shape == (6, 5, 3)
    assert pixels.dtype == np.uint8
