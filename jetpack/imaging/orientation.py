"""
EXIF orientation handling.

Cameras store the sensor orientation in EXIF tag 274 instead of rotating the
pixels. The resolver reads the tag once per source image and returns the
corrective RotationSpec that every derivative of that image gets.
"""

import io
from enum import Enum
from typing import Optional

from PIL import Image, UnidentifiedImageError

from jetpack.core.exceptions import ImageProcessingError
from jetpack.core.logging import get_logger, with_logging
from jetpack.core.metrics import track_stage_latency

logger = get_logger(__name__)

EXIF_ORIENTATION_TAG = 274


class RotationSpec(Enum):
    """Clockwise rotation followed by an optional horizontal flip."""

    NONE = (0, False)
    ROTATE_90 = (90, False)
    ROTATE_180 = (180, False)
    ROTATE_270 = (270, False)
    FLIP_X = (0, True)
    ROTATE_90_FLIP_X = (90, True)
    ROTATE_180_FLIP_X = (180, True)
    ROTATE_270_FLIP_X = (270, True)

    @property
    def transpose(self) -> Optional[Image.Transpose]:
        """The single Pillow transpose equivalent to this rotation, if any."""
        return _TRANSPOSES[self]

    def apply(self, image: Image.Image) -> Image.Image:
        """Return the corrected image; NONE returns the image unchanged."""
        method = self.transpose
        if method is None:
            return image
        return image.transpose(method)

    @classmethod
    def from_orientation(cls, orientation: Optional[int]) -> "RotationSpec":
        """Map an EXIF orientation value (1-8) to its correction."""
        return _ORIENTATIONS.get(orientation, cls.NONE)


# Pillow's ROTATE_* constants turn counter-clockwise
_TRANSPOSES = {
    RotationSpec.NONE: None,
    RotationSpec.ROTATE_90: Image.Transpose.ROTATE_270,
    RotationSpec.ROTATE_180: Image.Transpose.ROTATE_180,
    RotationSpec.ROTATE_270: Image.Transpose.ROTATE_90,
    RotationSpec.FLIP_X: Image.Transpose.FLIP_LEFT_RIGHT,
    RotationSpec.ROTATE_90_FLIP_X: Image.Transpose.TRANSPOSE,
    RotationSpec.ROTATE_180_FLIP_X: Image.Transpose.FLIP_TOP_BOTTOM,
    RotationSpec.ROTATE_270_FLIP_X: Image.Transpose.TRANSVERSE,
}

# Orientation 2 (mirrored) and unknown values map to NONE
_ORIENTATIONS = {
    1: RotationSpec.NONE,
    3: RotationSpec.ROTATE_180,
    4: RotationSpec.ROTATE_180_FLIP_X,
    5: RotationSpec.ROTATE_90_FLIP_X,
    6: RotationSpec.ROTATE_90,
    7: RotationSpec.ROTATE_270_FLIP_X,
    8: RotationSpec.ROTATE_270,
}


@with_logging("orientation")
def resolve_rotation(image_bytes: bytes) -> RotationSpec:
    """
    Read the EXIF orientation of an encoded image.

    Opens its own read cursor over ``image_bytes``, so the buffer stays
    usable by the renderer.

    Raises:
        ImageProcessingError: If the bytes are not a decodable image.
    """
    with track_stage_latency("orientation"):
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                orientation = image.getexif().get(EXIF_ORIENTATION_TAG)
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ImageProcessingError(
                f"Cannot read image metadata: {e}",
                stage="orientation"
            ) from e

    rotation = RotationSpec.from_orientation(orientation)
    logger.debug("orientation_resolved", orientation=orientation, rotation=rotation.name)
    return rotation
