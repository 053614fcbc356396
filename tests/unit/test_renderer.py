import io

import pytest
from PIL import Image

from jetpack.core.exceptions import ImageProcessingError
from jetpack.imaging.orientation import RotationSpec
from jetpack.imaging.renderer import render_derivative


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


@pytest.mark.parametrize("source_size", [(400, 100), (100, 400), (300, 300), (20, 10)])
def test_force_square_is_exact(image_factory, source_size):
    data = image_factory(size=source_size)
    output = _open(render_derivative(data, 150, force_square=True))
    assert output.size == (150, 150)


def test_force_square_pads_with_background(image_factory):
    data = image_factory(size=(200, 100), color=(0, 0, 0))
    output = _open(render_derivative(data, 100, force_square=True, background_color=(255, 255, 255, 255)))
    # padding above the centred 100x50 image
    r, g, b = output.convert("RGB").getpixel((50, 5))
    assert min(r, g, b) > 240
    r, g, b = output.convert("RGB").getpixel((50, 50))
    assert max(r, g, b) < 15


def test_force_square_keeps_png_transparency(image_factory):
    data = image_factory(size=(100, 50), fmt="PNG")
    output = _open(render_derivative(data, 80, force_square=True, background_color=(0, 0, 0, 0)))
    assert output.format == "PNG"
    assert output.size == (80, 80)
    assert output.getpixel((40, 2))[3] == 0


def test_capped_width_preserves_aspect_ratio(image_factory):
    data = image_factory(size=(800, 400))
    output = _open(render_derivative(data, 200))
    assert output.size == (200, 100)


def test_capped_width_limits_longer_side(image_factory):
    data = image_factory(size=(300, 600))
    output = _open(render_derivative(data, 200))
    assert output.size == (100, 200)


def test_never_upscales(image_factory):
    data = image_factory(size=(50, 30))
    output = _open(render_derivative(data, 400))
    assert output.size == (50, 30)


def test_zero_width_keeps_original_size(image_factory):
    data = image_factory(size=(123, 45))
    assert _open(render_derivative(data, 0)).size == (123, 45)


def test_rotation_is_applied_before_resize(image_factory):
    data = image_factory(size=(400, 200))
    output = _open(render_derivative(data, 100, rotation=RotationSpec.ROTATE_90))
    assert output.size == (50, 100)


def test_output_keeps_source_format(image_factory):
    assert _open(render_derivative(image_factory(fmt="PNG"), 16)).format == "PNG"
    assert _open(render_derivative(image_factory(fmt="JPEG"), 16)).format == "JPEG"


def test_output_drops_exif_orientation(image_factory):
    data = image_factory(size=(40, 20), orientation=6)
    output = _open(render_derivative(data, 40, rotation=RotationSpec.ROTATE_90))
    assert output.getexif().get(274) is None
    assert output.size == (20, 40)


def test_corrupt_data_raises():
    with pytest.raises(ImageProcessingError) as exc_info:
        render_derivative(b"\x00\x01garbage", 100)
    assert exc_info.value.stage == "render"
    assert exc_info.value.details["width"] == 100


def _encode_image(image: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.mark.parametrize("force_square,expected", [(False, (16, 8)), (True, (16, 16))])
def test_sixteen_bit_greyscale_png(force_square, expected):
    data = _encode_image(Image.new("I;16", (64, 32), 40000), "PNG")
    output = _open(render_derivative(data, 16, force_square=force_square))
    assert output.format == "PNG"
    assert output.size == expected


def test_sixteen_bit_greyscale_keeps_brightness():
    data = _encode_image(Image.new("I;16", (64, 32), 40000), "PNG")
    output = _open(render_derivative(data, 16))
    # 40000 / 256
    assert abs(output.getpixel((8, 4)) - 156) <= 1


@pytest.mark.parametrize("force_square,expected", [(False, (20, 10)), (True, (20, 20))])
def test_palette_gif(force_square, expected):
    data = _encode_image(Image.new("P", (80, 40), 3), "GIF")
    output = _open(render_derivative(data, 20, force_square=force_square))
    assert output.format == "GIF"
    assert output.size == expected
