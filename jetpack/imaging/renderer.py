"""
Derivative rendering with Pillow.

Decodes the source image, applies the orientation correction and resizes it
to one target width, either capped (longer side <= width, never upscaled)
or padded onto a ``width x width`` square canvas.
"""

import io
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from jetpack.core.exceptions import ImageProcessingError
from jetpack.core.logging import get_logger
from jetpack.core.metrics import track_stage_latency, derivatives_total
from jetpack.imaging.orientation import RotationSpec

logger = get_logger(__name__)

RGBA = Tuple[int, int, int, int]

DEFAULT_QUALITY = 90
SQUARE_QUALITY = 80

# Formats written back as-is; anything else is re-encoded as PNG
WRITABLE_FORMATS = {"JPEG", "PNG", "GIF", "WEBP"}
OPAQUE_FORMATS = {"JPEG"}

# 16-bit and float modes Pillow cannot resample or write to web formats
HIGH_DEPTH_MODES = {"I", "I;16", "I;16L", "I;16B", "I;16N", "F"}


def _output_format(source_format: str) -> str:
    fmt = (source_format or "").upper()
    return fmt if fmt in WRITABLE_FORMATS else "PNG"


def _to_eight_bit(image: Image.Image) -> Image.Image:
    """Map 16-bit and float greyscale onto 8-bit 'L'; other modes pass through."""
    if image.mode not in HIGH_DEPTH_MODES:
        return image
    if image.mode == "F":
        return image.convert("L")

    wide = image.convert("I")
    if image.mode.startswith("I;16") or wide.getextrema()[1] > 255:
        wide = wide.point(lambda v: v * (1 / 256))
    return wide.convert("L")


def _fit_capped(image: Image.Image, width: int) -> Image.Image:
    """Shrink so the longer side is at most ``width``; 0 keeps the original size."""
    if width <= 0 or max(image.size) <= width:
        return image
    resized = image.copy()
    resized.thumbnail((width, width), Image.Resampling.LANCZOS)
    return resized


def _fit_square(image: Image.Image, width: int, background_color: RGBA, opaque: bool) -> Image.Image:
    """Scale to fit inside a ``width`` square and centre it on a padded canvas."""
    side = width if width > 0 else max(image.size)
    fitted = ImageOps.contain(image.convert("RGBA"), (side, side), Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", (side, side), background_color)
    offset = ((side - fitted.width) // 2, (side - fitted.height) // 2)
    canvas.alpha_composite(fitted, offset)

    if opaque:
        # JPEG has no alpha; flatten onto the opaque background colour
        flattened = Image.new("RGB", (side, side), background_color[:3])
        flattened.paste(canvas, mask=canvas.getchannel("A"))
        return flattened
    return canvas


def _encode(image: Image.Image, fmt: str, quality: int) -> bytes:
    if fmt in OPAQUE_FORMATS and image.mode != "RGB":
        image = image.convert("RGB")
    elif image.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
        image = image.convert("RGBA")

    buffer = io.BytesIO()
    if fmt in ("JPEG", "WEBP"):
        image.save(buffer, format=fmt, quality=quality)
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


def render_derivative(
    image_bytes: bytes,
    width: int,
    force_square: bool = False,
    background_color: RGBA = (255, 255, 255, 255),
    rotation: RotationSpec = RotationSpec.NONE
) -> bytes:
    """
    Render one derivative of an encoded image.

    Args:
        image_bytes: Encoded source image
        width: Target width; 0 keeps the original size
        force_square: Pad to an exact ``width x width`` canvas
        background_color: RGBA padding colour, used only when force_square
        rotation: Orientation correction applied before resizing

    Returns:
        The encoded derivative, in the source format where Pillow can write it

    Raises:
        ImageProcessingError: If the source cannot be decoded or encoded.
    """
    with track_stage_latency("render"):
        try:
            with Image.open(io.BytesIO(image_bytes)) as source:
                source.load()
                fmt = _output_format(source.format)
                image = _to_eight_bit(rotation.apply(source))

                if force_square:
                    image = _fit_square(image, width, background_color, opaque=fmt in OPAQUE_FORMATS)
                    output = _encode(image, fmt, SQUARE_QUALITY)
                else:
                    image = _fit_capped(image, width)
                    output = _encode(image, fmt, DEFAULT_QUALITY)

                size = image.size
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ImageProcessingError(
                f"Cannot render {width}px derivative: {e}",
                stage="render",
                details={"width": width}
            ) from e

    derivatives_total.inc()
    logger.debug(
        "derivative_rendered",
        width=width,
        force_square=force_square,
        output_width=size[0],
        output_height=size[1],
        output_size=len(output),
        format=fmt
    )
    return output
