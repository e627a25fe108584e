"""Command line entrypoint: crop one image file the way an interactive session would.

Example:
    image-cropper crop photo.jpg avatar.jpg --viewport 300x300 --scale 1.5 \
        --offset 10,-20 --crop-size 150 --output-size 300 --max-bytes 200000
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from . import events as ev
from .encoder import compress, encode_at_quality
from .errors import CropError
from .geometry import Point, Size
from .settings import load_settings


def _parse_pair(text: str, sep: str) -> tuple[float, float]:
    try:
        a, b = text.lower().split(sep)
        return float(a), float(b)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected two numbers separated by {sep!r}, got {text!r}") from None


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def _viewport(text: str) -> Size:
    return Size(*_parse_pair(text, "x"))


def _offset(text: str) -> Point:
    return Point(*_parse_pair(text, ","))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="image-cropper", description="Pan/zoom crop and bounded-size re-encoding")
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    sub = parser.add_subparsers(dest="command", required=True)

    crop = sub.add_parser("crop", help="Crop an image file and write the result")
    crop.add_argument("source", help="Source image file")
    crop.add_argument("output", help="Destination file")
    crop.add_argument("--viewport", type=_viewport, default=Size(300.0, 300.0), help="Viewport WxH (default 300x300)")
    crop.add_argument("--scale", type=float, default=1.0, help="Zoom ratio applied to the fitted image")
    crop.add_argument("--offset", type=_offset, default=Point(), help="Pan offset X,Y in viewport units")
    crop.add_argument("--crop-size", type=float, default=None, help="Crop window side in viewport units")
    crop.add_argument("--output-size", type=_positive_int, default=None, help="Square output side in pixels")
    crop.add_argument("--max-bytes", type=_positive_int, default=None, help="Byte budget for the re-encoded result")
    crop.add_argument("--settings", default=None, help="JSON settings file")
    return parser


def _apply_logging_options(args: argparse.Namespace) -> None:
    # Reflect CLI options into the environment read by setup_logger().
    if args.log_level:
        os.environ["IMAGE_CROPPER_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["IMAGE_CROPPER_LOG_CATS"] = args.log_cats


def _run_crop(args: argparse.Namespace) -> int:
    from .logger import get_logger
    from .session import begin_session
    from .source import load_source_image

    logger = get_logger("cli")
    settings = load_settings(args.settings)

    session = begin_session(load_source_image(args.source), args.viewport, settings)
    if args.crop_size is not None:
        # Replay the size as a bottom-right drag so clamping applies as in the UI.
        change = args.crop_size - session.crop_size
        session.apply(ev.CropResize(ev.Corner.BOTTOM_RIGHT, Point(change, change)))
        session.apply(ev.CropResizeEnded())
    session.apply(ev.ZoomChanged(args.scale))
    session.apply(ev.ZoomEnded())
    session.apply(ev.PanChanged(args.offset))
    session.apply(ev.PanEnded())
    result = session.commit(args.output_size)

    if args.max_bytes is not None:
        encoded = compress(result, args.max_bytes, settings)
        if encoded is None:
            logger.error("could not encode crop of %s", args.source)
            return 1
        data = encoded.data
    else:
        data = encode_at_quality(result.image, settings.initial_quality, settings.encode_format)

    Path(args.output).write_bytes(data)
    logger.info(
        "wrote %s: region=%s size=%dx%d bytes=%d%s",
        args.output,
        tuple(int(v) for v in result.region.as_tuple()),
        result.width,
        result.height,
        len(data),
        " (fallback)" if result.fallback else "",
    )
    return 0


def run(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    _apply_logging_options(args)
    try:
        if args.command == "crop":
            return _run_crop(args)
    except CropError as e:
        print(f"image-cropper: {e}", file=sys.stderr)
        return 2
    parser.error(f"unknown command {args.command!r}")
    return 2
