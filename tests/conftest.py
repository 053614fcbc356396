import io
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from PIL import Image

from jetpack.core.storage import BlobStore
from jetpack.core.exceptions import StorageError
from jetpack.imaging.orientation import EXIF_ORIENTATION_TAG


def make_image_bytes(
    size: Tuple[int, int] = (64, 32),
    fmt: str = "JPEG",
    orientation: Optional[int] = None,
    color=(200, 30, 30)
) -> bytes:
    """Encode a solid image, optionally tagged with an EXIF orientation."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 255)
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    if orientation is not None:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION_TAG] = orientation
        image.save(buffer, format=fmt, exif=exif.tobytes())
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


class RecordingBlobStore(BlobStore):
    """In-memory blob store that records every call."""
    
    def __init__(self, fail_keys: Optional[Callable[[str], bool]] = None):
        self.blobs: Dict[Tuple[str, str], dict] = {}
        self.uploads: List[Tuple[str, str]] = []
        self.deletes: List[Tuple[str, str]] = []
        self.fail_keys = fail_keys
    
    async def upload(self, container, key, data, content_type="application/octet-stream", cache_control=None):
        self.uploads.append((container, key))
        if self.fail_keys and self.fail_keys(key):
            raise StorageError("upload rejected", container=container, key=key)
        self.blobs[(container, key)] = {
            "data": data,
            "content_type": content_type,
            "cache_control": cache_control,
        }
        return self.url_for(container, key)
    
    async def delete(self, container, key):
        self.deletes.append((container, key))
        self.blobs.pop((container, key), None)
    
    def url_for(self, container, key):
        return f"http://devaccount.blob.core.windows.net:10000/{container}/{key}"


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def blob_store():
    return RecordingBlobStore()
