"""
Storage Abstraction Layer - The Bridge Pattern

Provides a narrow blob store interface (upload, delete, canonical URL) with
AzureBlobStore for production and LocalBlobStore for development and tests.
Containers are addressed by name and must already exist.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from jetpack.core.config import Settings
from jetpack.core.exceptions import StorageConfigurationError, StorageError
from jetpack.core.logging import get_logger

logger = get_logger(__name__)


class BlobStore(ABC):
    """Interface for blob storage operations - The Bridge"""

    @abstractmethod
    async def upload(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        cache_control: Optional[str] = None
    ) -> str:
        """
        Upload a blob, overwriting any existing blob with the same key.

        Args:
            container: Name of an existing container
            key: Blob name within the container
            data: Raw bytes of the blob
            content_type: MIME type stored with the blob
            cache_control: Cache-Control header stored with the blob

        Returns:
            The canonical URL of the stored blob
        """
        pass

    @abstractmethod
    async def delete(self, container: str, key: str) -> None:
        """Delete a blob. Deleting a missing blob is a no-op."""
        pass

    @abstractmethod
    def url_for(self, container: str, key: str) -> str:
        """Canonical URL of a blob, whether or not it exists."""
        pass


class LocalBlobStore(BlobStore):
    """Local filesystem storage implementation for development."""

    def __init__(self, base_path: str = "./data/storage", base_url: str = "http://localhost:8000/storage"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    def _container_path(self, container: str) -> Path:
        root = self.base_path.resolve()
        container_path = (root / container).resolve()
        if container_path.parent != root:
            raise StorageError(
                f"Invalid container name: {container}",
                container=container
            )
        if not container_path.is_dir():
            raise StorageError(
                f"Container not found: {container}",
                container=container
            )
        return container_path

    def _blob_path(self, container: str, key: str) -> Path:
        """Path of a blob; keys that escape their container are rejected."""
        container_path = self._container_path(container)
        file_path = (container_path / key).resolve()
        if file_path == container_path or not file_path.is_relative_to(container_path):
            raise StorageError(
                f"Blob key escapes its container: {key}",
                container=container,
                key=key
            )
        return file_path

    async def upload(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        cache_control: Optional[str] = None
    ) -> str:
        # Content type and cache control have no filesystem equivalent
        file_path = self._blob_path(container, key)
        await asyncio.to_thread(file_path.write_bytes, data)
        return self.url_for(container, key)

    async def delete(self, container: str, key: str) -> None:
        file_path = self._blob_path(container, key)
        await asyncio.to_thread(file_path.unlink, missing_ok=True)

    def url_for(self, container: str, key: str) -> str:
        return f"{self.base_url}/{quote(container)}/{quote(key)}"


class AzureBlobStore(BlobStore):
    """Azure Blob Storage implementation for production."""

    def __init__(self, connection_string: Optional[str]):
        self.connection_string = connection_string
        self._blob_service_client: Optional[BlobServiceClient] = None

    @property
    def blob_service_client(self) -> BlobServiceClient:
        """Lazily build the service client; a missing connection string fails here."""
        if self._blob_service_client is None:
            if not self.connection_string or not self.connection_string.strip():
                raise StorageConfigurationError(
                    "Azure Blob Storage is not configured, set STORAGE_CONNECTION",
                    backend="azure"
                )
            try:
                self._blob_service_client = BlobServiceClient.from_connection_string(
                    self.connection_string
                )
            except ValueError as e:
                raise StorageConfigurationError(
                    f"Invalid Azure Blob Storage connection string: {e}",
                    backend="azure"
                ) from e
        return self._blob_service_client

    def _blob_client(self, container: str, key: str):
        return self.blob_service_client.get_blob_client(container=container, blob=key)

    async def upload(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        cache_control: Optional[str] = None
    ) -> str:
        blob_client = self._blob_client(container, key)
        content_settings = ContentSettings(
            content_type=content_type,
            cache_control=cache_control
        )

        try:
            await asyncio.to_thread(
                blob_client.upload_blob,
                data,
                overwrite=True,
                content_settings=content_settings
            )
        except AzureError as e:
            raise StorageError(
                f"Azure upload failed: {e}",
                container=container,
                key=key
            ) from e

        return blob_client.url

    async def delete(self, container: str, key: str) -> None:
        blob_client = self._blob_client(container, key)
        try:
            await asyncio.to_thread(blob_client.delete_blob)
        except ResourceNotFoundError:
            logger.debug("blob_delete_missing", container=container, key=key)
        except AzureError as e:
            raise StorageError(
                f"Azure delete failed: {e}",
                container=container,
                key=key
            ) from e

    def url_for(self, container: str, key: str) -> str:
        return self._blob_client(container, key).url


class StorageFactory:
    """
    Factory for creating blob store instances.

    STORAGE_BACKEND=azure (the default) requires STORAGE_CONNECTION; the
    check happens on first use of the store, not here.
    """

    @staticmethod
    def create(settings: Settings) -> BlobStore:
        """Build the blob store selected by the given settings."""
        backend = settings.STORAGE_BACKEND.lower()

        if backend == "local":
            return LocalBlobStore(
                base_path=settings.LOCAL_STORAGE_PATH,
                base_url=settings.LOCAL_STORAGE_BASE_URL
            )

        if backend == "azure":
            return AzureBlobStore(connection_string=settings.STORAGE_CONNECTION)

        raise StorageConfigurationError(
            f"Unknown storage backend: {settings.STORAGE_BACKEND}",
            backend=backend
        )
