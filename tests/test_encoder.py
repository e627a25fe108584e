import numpy as np
import pytest

pyvips = pytest.importorskip("pyvips")

from image_cropper.encoder import compress, encode_at_quality
from image_cropper.metrics import metrics
from image_cropper.orientation import Orientation
from image_cropper.session import begin_session
from image_cropper.settings import CropSettings
from image_cropper.source import SourceImage, load_source_image

QUALITIES = [0.9, 0.8, 0.7, 0.6, 0.5, 0.4, 0.3, 0.2, 0.1]


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


def test_lower_quality_strictly_shrinks_output(noise_rgb):
    pixels = noise_rgb(128, 128)
    sizes = [len(encode_at_quality(pixels, q)) for q in QUALITIES]

    assert all(a > b for a, b in zip(sizes, sizes[1:]))


def test_generous_budget_encodes_once(noise_rgb):
    encoded = compress(noise_rgb(64, 64), 10_000_000)

    assert encoded is not None
    assert encoded.quality == pytest.approx(0.9)
    assert encoded.content_type == "image/jpeg"
    assert encoded.data.startswith(b"\xff\xd8")
    assert encoded.byte_length == len(encoded.data)
    assert not encoded.downscaled
    assert metrics.count("encoder.encode_attempts") == 1


def test_budget_met_by_quality_reduction(noise_rgb):
    pixels = noise_rgb(128, 128)
    budget = len(encode_at_quality(pixels, 0.5))
    metrics.reset()

    encoded = compress(pixels, budget)

    assert encoded is not None
    assert encoded.byte_length <= budget
    assert encoded.quality == pytest.approx(0.5)
    assert (encoded.width, encoded.height) == (128, 128)
    assert metrics.count("encoder.quality_steps") == 4
    sizes = metrics.samples("encoder.encoded_bytes")
    assert all(a > b for a, b in zip(sizes, sizes[1:]))


def test_unreachable_budget_stops_after_floor_and_one_downscale(noise_rgb):
    encoded = compress(noise_rgb(96, 64), 1)

    assert encoded is not None
    assert encoded.downscaled
    assert encoded.quality == pytest.approx(0.9)
    assert encoded.byte_length > 1  # best effort, not a hard cap
    assert metrics.count("encoder.quality_steps") == 8
    assert metrics.count("encoder.downscale_passes") == 1
    assert metrics.count("encoder.encode_attempts") == 10


def test_downscale_preserves_aspect_ratio(noise_rgb):
    pixels = noise_rgb(400, 200)
    floor_size = len(encode_at_quality(pixels, 0.1))

    encoded = compress(pixels, floor_size // 4)

    assert encoded is not None
    assert encoded.downscaled
    assert encoded.width < 400
    assert encoded.width / encoded.height == pytest.approx(2.0, rel=0.05)
    # sqrt(1/4) halves each side.
    assert encoded.width == pytest.approx(200, abs=2)


def test_zero_dimension_image_has_no_data():
    assert compress(np.zeros((0, 10, 3), dtype=np.uint8), 1000) is None
    assert metrics.count("encoder.failed") == 1


def test_non_positive_budget_is_rejected(noise_rgb):
    with pytest.raises(ValueError):
        compress(noise_rgb(8, 8), 0)


def test_unsupported_input_type():
    with pytest.raises(TypeError):
        compress("not an image", 1000)


def test_accepts_crop_result_and_source_image(gradient_rgb):
    source = SourceImage(gradient_rgb(40, 20), Orientation.RIGHT)
    encoded = compress(source, 1_000_000)
    assert encoded is not None
    assert (encoded.width, encoded.height) == (20, 40)

    result = begin_session(source, (300, 300)).commit(64)
    encoded = compress(result, 1_000_000)
    assert encoded is not None
    assert (encoded.width, encoded.height) == (64, 64)


def test_alpha_and_grey_inputs_encode(gradient_rgb):
    rgba = np.concatenate([gradient_rgb(16, 16), np.full((16, 16, 1), 128, dtype=np.uint8)], axis=2)
    grey = np.full((16, 16), 90, dtype=np.uint8)
    grey_alpha = np.dstack([grey, np.full((16, 16), 200, dtype=np.uint8)])

    for pixels in (rgba, grey, grey_alpha):
        encoded = compress(pixels, 1_000_000)
        assert encoded is not None
        decoded = load_source_image(encoded.data)
        assert (decoded.width, decoded.height) == (16, 16)


def test_custom_quality_constants(noise_rgb):
    settings = CropSettings(initial_quality=0.8, quality_step=0.2, quality_floor=0.2)
    compress(noise_rgb(64, 64), 1, settings)

    # 0.8 -> 0.6 -> 0.4 -> 0.2
    assert metrics.count("encoder.quality_steps") == 3


@pytest.mark.skipif(
    not hasattr(pyvips, "type_find") or pyvips.type_find("VipsOperation", "webpsave_buffer") == 0,
    reason="libvips built without WebP support",
)
def test_webp_output(noise_rgb):
    encoded = compress(noise_rgb(64, 64), 10_000_000, CropSettings(encode_format="webp"))

    assert encoded is not None
    assert encoded.content_type == "image/webp"
    assert encoded.data[:4] == b"RIFF"


def test_grey_alpha_crop_result_encodes():
    grey_alpha = np.dstack([np.full((60, 80), 120, dtype=np.uint8), np.full((60, 80), 255, dtype=np.uint8)])
    result = begin_session(SourceImage(grey_alpha), (300, 300)).commit(32)
    assert result.image.shape == (32, 32, 2)

    encoded = compress(result, 1_000_000)

    assert encoded is not None
    assert (encoded.width, encoded.height) == (32, 32)
    assert metrics.count("encoder.failed") == 0
