"""
Blob upload with cache headers and CDN URL rewriting.

Every uploaded blob is marked publicly cacheable for CACHE_CONTROL_YEARS;
keys are never reused, so cached copies never go stale.
"""

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from jetpack.core.storage import BlobStore
from jetpack.core.logging import get_logger
from jetpack.core.metrics import track_stage_latency, record_blob_operation
from jetpack.pipeline.schemas import StoredAsset

logger = get_logger(__name__)

SECONDS_IN_YEAR = 31536000


def cache_control_for_years(years: int) -> str:
    return f"public, max-age={SECONDS_IN_YEAR * years}"


def rewrite_to_cdn(url: str, cdn_host_name: Optional[str]) -> str:
    """Swap scheme to https and host to the CDN host, dropping any port."""
    if not cdn_host_name:
        return url

    parts = urlsplit(url)
    return urlunsplit(("https", cdn_host_name, parts.path, parts.query, parts.fragment))


class BlobUploader:
    """Uploads and deletes blobs through a BlobStore."""
    
    def __init__(
        self,
        store: BlobStore,
        cdn_host_name: Optional[str] = None,
        cache_control_years: int = 1
    ):
        self.store = store
        self.cdn_host_name = cdn_host_name
        self.cache_control = cache_control_for_years(cache_control_years)
    
    async def upload(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str
    ) -> StoredAsset:
        """Upload (overwriting) and return the public, possibly CDN-rewritten, URL."""
        try:
            with track_stage_latency("upload"):
                url = await self.store.upload(
                    container,
                    key,
                    data,
                    content_type=content_type,
                    cache_control=self.cache_control
                )
        except Exception:
            record_blob_operation("upload", "error")
            raise
        
        record_blob_operation("upload", "success")
        uri = rewrite_to_cdn(url, self.cdn_host_name)
        logger.info("blob_uploaded", container=container, key=key, size=len(data), uri=uri)
        return StoredAsset(container=container, key=key, uri=uri)
    
    async def delete(self, container: str, key: str) -> None:
        try:
            with track_stage_latency("delete"):
                await self.store.delete(container, key)
        except Exception:
            record_blob_operation("delete", "error")
            raise
        
        record_blob_operation("delete", "success")
        logger.info("blob_deleted", container=container, key=key)
