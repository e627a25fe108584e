from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

pyvips = pytest.importorskip("pyvips")

from image_cropper.cli import build_parser, run
from image_cropper.source import load_source_image


@pytest.fixture
def source_jpeg(tmp_path: Path, noise_rgb) -> Path:
    pixels = noise_rgb(600, 400)
    image = pyvips.Image.new_from_memory(np.ascontiguousarray(pixels).tobytes(), 600, 400, 3, "uchar")
    path = tmp_path / "source.jpg"
    image.write_to_file(str(path), Q=95)
    return path


def test_parser_reads_pairs() -> None:
    args = build_parser().parse_args(["crop", "a.jpg", "b.jpg", "--viewport", "320x240", "--offset", "5,-7"])
    assert (args.viewport.width, args.viewport.height) == (320, 240)
    assert (args.offset.x, args.offset.y) == (5, -7)


def test_parser_rejects_malformed_pair() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["crop", "a.jpg", "b.jpg", "--viewport", "300"])


@pytest.mark.parametrize("flag", ["--output-size", "--max-bytes"])
def test_parser_rejects_non_positive_sizes(flag: str) -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["crop", "a.jpg", "b.jpg", flag, "0"])


def test_crop_writes_output(tmp_path: Path, source_jpeg: Path) -> None:
    out = tmp_path / "out.jpg"

    code = run(["crop", str(source_jpeg), str(out), "--crop-size", "150", "--output-size", "96", "--scale", "1.5"])

    assert code == 0
    result = load_source_image(out)
    assert (result.width, result.height) == (96, 96)


def test_crop_with_byte_budget(tmp_path: Path, source_jpeg: Path) -> None:
    out = tmp_path / "small.jpg"

    code = run(["crop", str(source_jpeg), str(out), "--output-size", "200", "--max-bytes", "8000"])

    assert code == 0
    assert out.read_bytes()[:2] == b"\xff\xd8"


def test_missing_source_exits_with_error(tmp_path: Path, capsys) -> None:
    code = run(["crop", str(tmp_path / "missing.jpg"), str(tmp_path / "out.jpg")])

    assert code == 2
    assert "image-cropper:" in capsys.readouterr().err
    assert not (tmp_path / "out.jpg").exists()
