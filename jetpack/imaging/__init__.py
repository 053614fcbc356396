"""
Image derivative building blocks

1. Naming - collision-resistant storage keys
2. Orientation - EXIF-driven rotation correction
3. Rendering - capped or padded-square resize
"""

from jetpack.imaging.naming import SlugNamer, generate_slug
from jetpack.imaging.orientation import RotationSpec, resolve_rotation
from jetpack.imaging.renderer import render_derivative

__all__ = [
    "SlugNamer",
    "generate_slug",
    "RotationSpec",
    "resolve_rotation",
    "render_derivative",
]
