"""Where finished videos (and thumbnails) are published.

LocalVideoStorage serves files from the output directory through the API's
``/output`` static mount. R2VideoStorage uploads to Cloudflare R2 and returns
a presigned URL.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from services.r2_storage import R2Storage, StorageError, get_r2_storage

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/output"


class VideoStorage(ABC):
    """Publishes a local file and returns the URL clients should use."""

    @property
    @abstractmethod
    def is_remote(self) -> bool:
        """True when publishing involves an upload (and an ``upload`` step)."""

    @abstractmethod
    async def publish(self, path: Path, key: Optional[str] = None) -> str:
        """Make ``path`` reachable and return its URL.

        Raises:
            StorageError: If the file cannot be published
        """


class LocalVideoStorage(VideoStorage):
    """Files stay in the output directory and are served by the API."""

    def __init__(self, url_prefix: str = LOCAL_URL_PREFIX):
        self.url_prefix = url_prefix.rstrip("/")

    @property
    def is_remote(self) -> bool:
        return False

    async def publish(self, path: Path, key: Optional[str] = None) -> str:
        path = Path(path)
        if not path.exists():
            raise StorageError(f"Cannot publish missing file: {path}")
        return f"{self.url_prefix}/{key or path.name}"


class R2VideoStorage(VideoStorage):
    """Uploads to R2 and returns a presigned URL valid for ``url_ttl_seconds``."""

    def __init__(self, storage: R2Storage, url_ttl_seconds: int = 86400, prefix: str = "videos"):
        self.storage = storage
        self.url_ttl_seconds = url_ttl_seconds
        self.prefix = prefix.strip("/")

    @property
    def is_remote(self) -> bool:
        return True

    async def publish(self, path: Path, key: Optional[str] = None) -> str:
        path = Path(path)
        object_key = key or (f"{self.prefix}/{path.name}" if self.prefix else path.name)
        # boto3 is blocking
        await asyncio.to_thread(self.storage.upload_file, path, object_key)
        url = await asyncio.to_thread(
            self.storage.get_presigned_url, object_key, self.url_ttl_seconds
        )
        logger.info(f"Published {path.name} to R2 as {object_key}")
        return url


def build_video_storage(config: dict) -> VideoStorage:
    """R2 storage when credentials are configured, local storage otherwise."""
    r2 = get_r2_storage(config)
    if r2 is None:
        return LocalVideoStorage()
    return R2VideoStorage(r2, url_ttl_seconds=config.get("signed_url_ttl_seconds", 86400))
