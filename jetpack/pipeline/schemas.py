"""
Pydantic schemas for the storage pipeline.

Defines the caller-facing value objects (image settings, uploaded source
asset, stored asset) and the transient per-width derivative. Invalid input
to the caller-facing models raises jetpack's ``ValidationError`` (400).
"""

from typing import BinaryIO, Tuple

import pydantic
from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, field_validator

from jetpack.core.exceptions import ValidationError


class CallerInput(BaseModel):
    """Frozen model whose construction errors surface as ValidationError."""
    model_config = ConfigDict(frozen=True)
    
    def __init__(self, **data):
        try:
            super().__init__(**data)
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid {type(self).__name__}: {e.error_count()} error(s)",
                details={
                    "errors": [
                        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                        for error in e.errors()
                    ]
                }
            ) from e


class ImageSettings(CallerInput):
    """Resize settings for SaveImage; one derivative per width, in order."""
    
    widths: Tuple[int, ...] = Field(..., min_length=1, description="Target widths, 0 = original size")
    force_square: bool = Field(default=False, description="Pad every derivative to width x width")
    background_color: Tuple[int, int, int, int] = Field(
        default=(255, 255, 255, 255),
        description="RGBA padding colour, used only when force_square is set"
    )
    
    @field_validator("widths")
    @classmethod
    def validate_widths(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if any(width < 0 for width in v):
            raise ValueError("widths must be >= 0")
        return v
    
    @field_validator("background_color", mode="before")
    @classmethod
    def parse_background_color(cls, v):
        """Accept colour strings such as '#fff', 'white' or 'rgb(0,0,0)'."""
        if isinstance(v, str):
            v = ImageColor.getrgb(v)
        if isinstance(v, (tuple, list)) and len(v) == 3:
            v = (*v, 255)
        return v
    
    @field_validator("background_color")
    @classmethod
    def validate_background_color(cls, v: Tuple[int, int, int, int]) -> Tuple[int, int, int, int]:
        if any(channel < 0 or channel > 255 for channel in v):
            raise ValueError("background_color channels must be within 0-255")
        return v


class SourceAsset(CallerInput):
    """An uploaded file, fully buffered in memory."""
    
    file_name: str = Field(..., min_length=1)
    content_type: str = Field(default="application/octet-stream")
    data: bytes = Field(..., repr=False)
    
    @classmethod
    def from_stream(cls, file_name: str, content_type: str, stream: BinaryIO) -> "SourceAsset":
        """Read the stream once, from its current position to the end."""
        return cls(file_name=file_name, content_type=content_type, data=stream.read())


class Derivative(BaseModel):
    """One rendered width of a source image, ready for upload."""
    
    width: int
    key: str
    data: bytes = Field(..., repr=False)


class StoredAsset(BaseModel):
    """A blob that was uploaded, addressed by its public URL."""
    
    container: str
    key: str
    uri: str
    
    def __str__(self) -> str:
        return self.uri


