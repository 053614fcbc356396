"""
Storage Pipeline

SaveFile / SaveImage / DeleteFile on top of a pluggable blob store.
"""

from jetpack.pipeline.schemas import ImageSettings, SourceAsset, StoredAsset
from jetpack.pipeline.service import StorageService, get_storage_service
from jetpack.pipeline.uploader import BlobUploader

__all__ = [
    "ImageSettings",
    "SourceAsset",
    "StoredAsset",
    "StorageService",
    "get_storage_service",
    "BlobUploader",
]
