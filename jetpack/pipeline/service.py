"""
Storage Service - Image Derivative Pipeline

Three-step pipeline per SaveImage call:
1. Orientation - resolved once from the source EXIF data
2. Render + name - one derivative per configured width (CPU, in threads)
3. Upload - all derivatives concurrently, results in width order

Rendering finishes for every width before the first upload starts, so a
corrupt source never leaves blobs behind. If any upload fails, the blobs
already uploaded by that call are deleted and the failure is raised. The
same cleanup runs when the caller cancels the call mid-upload.
"""

import uuid
import asyncio
from typing import List, Optional

from jetpack.core.config import Settings, settings as default_settings
from jetpack.core.logging import get_logger, LogContext
from jetpack.core.storage import StorageFactory
from jetpack.imaging.naming import SlugNamer
from jetpack.imaging.orientation import RotationSpec, resolve_rotation
from jetpack.imaging.renderer import render_derivative
from jetpack.pipeline.schemas import Derivative, ImageSettings, SourceAsset, StoredAsset
from jetpack.pipeline.uploader import BlobUploader

logger = get_logger(__name__)


class StorageService:
    """
    Saves files and image derivatives to blob storage.

    Usage:
        service = StorageService.from_settings(settings)
        uris = await service.save_image("images", asset, ImageSettings(widths=[100, 400]))
    """

    def __init__(self, uploader: BlobUploader, namer: Optional[SlugNamer] = None):
        self.uploader = uploader
        self.namer = namer or SlugNamer()

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageService":
        uploader = BlobUploader(
            StorageFactory.create(settings),
            cdn_host_name=settings.CDN_HOST_NAME,
            cache_control_years=settings.CACHE_CONTROL_YEARS
        )
        return cls(uploader)

    async def save_file(self, container_name: str, source: SourceAsset) -> StoredAsset:
        """Upload a file as-is under a fresh key."""
        key = self.namer.make_key(source.file_name)

        with LogContext(operation_id=uuid.uuid4().hex, stage="upload"):
            return await self.uploader.upload(
                container_name,
                key,
                source.data,
                source.content_type
            )

    async def save_image(
        self,
        container_name: str,
        source: SourceAsset,
        image_settings: ImageSettings
    ) -> List[StoredAsset]:
        """
        Render and upload one derivative per width in ``image_settings.widths``.

        Returns:
            Stored assets in the same order as the configured widths

        Raises:
            ImageProcessingError: If the source cannot be decoded or rendered;
                nothing is uploaded.
            StorageError: If any upload fails; nothing is left referenced.
        """
        with LogContext(operation_id=uuid.uuid4().hex) as context:
            logger.info(
                "image_pipeline_started",
                container=container_name,
                file_name=source.file_name,
                input_size=len(source.data),
                widths=list(image_settings.widths)
            )

            context.set_stage("orientation")
            rotation = await asyncio.to_thread(resolve_rotation, source.data)

            context.set_stage("render")
            derivatives = await asyncio.gather(*[
                self._render(source, width, image_settings, rotation)
                for width in image_settings.widths
            ])

            context.set_stage("upload")
            stored = await self._upload_all(container_name, derivatives, source.content_type)

            logger.info("image_pipeline_completed", count=len(stored))
            return stored

    async def delete_file(self, container_name: str, key: Optional[str]) -> None:
        """Delete a blob; a blank key or a missing blob is a no-op."""
        if key is None or not key.strip():
            return

        await self.uploader.delete(container_name, key)

    async def _render(
        self,
        source: SourceAsset,
        width: int,
        image_settings: ImageSettings,
        rotation: RotationSpec
    ) -> Derivative:
        data = await asyncio.to_thread(
            render_derivative,
            source.data,
            width,
            image_settings.force_square,
            image_settings.background_color,
            rotation
        )
        # Keys derive from the original file name, never an intermediate one
        return Derivative(width=width, key=self.namer.make_key(source.file_name, width), data=data)

    async def _upload_all(
        self,
        container_name: str,
        derivatives: List[Derivative],
        content_type: str
    ) -> List[StoredAsset]:
        uploaded: List[StoredAsset] = []

        async def upload_one(derivative: Derivative) -> StoredAsset:
            stored = await self.uploader.upload(container_name, derivative.key, derivative.data, content_type)
            uploaded.append(stored)
            return stored

        try:
            results = await asyncio.gather(
                *[upload_one(derivative) for derivative in derivatives],
                return_exceptions=True
            )
        except asyncio.CancelledError:
            logger.warning("image_upload_cancelled", rolled_back=len(uploaded))
            await asyncio.shield(self._discard(container_name, list(uploaded)))
            raise

        failures = [result for result in results if isinstance(result, BaseException)]
        if not failures:
            return list(results)

        logger.error(
            "image_upload_failed",
            failed=len(failures),
            rolled_back=len(uploaded),
            error=str(failures[0]),
            error_type=type(failures[0]).__name__
        )
        await self._discard(container_name, uploaded)
        raise failures[0]

    async def _discard(self, container_name: str, assets: List[StoredAsset]) -> None:
        """Best-effort removal of blobs from a failed call."""
        results = await asyncio.gather(
            *[self.uploader.delete(container_name, asset.key) for asset in assets],
            return_exceptions=True
        )
        for asset, result in zip(assets, results):
            if isinstance(result, Exception):
                logger.warning(
                    "orphaned_blob",
                    container=container_name,
                    key=asset.key,
                    error=str(result)
                )


def get_storage_service(settings: Optional[Settings] = None) -> StorageService:
    """Build a StorageService from explicit or environment settings."""
    return StorageService.from_settings(settings or default_settings)
