"""Cloudflare R2 Storage Service for finished videos.

Uses boto3 against R2's S3-compatible API: upload a rendered file, hand out
and hand out time-limited presigned download URLs.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when publishing a file fails."""

    pass


class R2Storage:
    """Cloudflare R2 object storage service.

    Uses boto3 with S3-compatible API to interact with Cloudflare R2.
    """

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
        client: Optional[Any] = None,
    ):
        """Initialize R2 storage.

        Args:
            account_id: Cloudflare account ID
            access_key_id: R2 API access key ID
            secret_access_key: R2 API secret access key
            bucket_name: R2 bucket name
            client: Pre-built S3 client (tests inject a fake)
        """
        self.account_id = account_id
        self.bucket_name = bucket_name

        # Configure S3 client for R2
        self._client = client or boto3.client(
            "s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
        )

        logger.info(f"R2 storage initialized for bucket: {bucket_name}")

    def upload_file(
        self,
        path: Union[str, Path],
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Upload a local file to R2.

        Args:
            path: Local file path
            key: Object key (path in bucket)
            content_type: MIME type (guessed from the key if not provided)

        Returns:
            The object key

        Raises:
            StorageError: If the upload fails
        """
        if content_type is None:
            content_type, _ = mimetypes.guess_type(key)
            content_type = content_type or "application/octet-stream"

        try:
            self._client.upload_file(
                str(path),
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (ClientError, BotoCoreError, OSError) as e:
            logger.error(f"Failed to upload {key}: {e}")
            raise StorageError(f"R2 upload failed for {key}: {e}") from e

        logger.info(f"Uploaded {key} to R2")
        return key

    def get_presigned_url(self, key: str, expires_in: int = 86400) -> str:
        """Generate a presigned download URL.

        Args:
            key: Object key
            expires_in: URL expiration time in seconds (default 24 hours)

        Returns:
            Presigned URL
        """
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL: {e}")
            raise StorageError(f"Could not sign URL for {key}: {e}") from e


def get_r2_storage(config: dict) -> Optional[R2Storage]:
    """Build an R2Storage from config, or None when R2 is not configured.

    Args:
        config: Dict from utils.config.load_config()

    Returns:
        R2Storage instance or None
    """
    required = ("r2_account_id", "r2_access_key_id", "r2_secret_access_key", "r2_bucket_name")
    if not all(config.get(key) for key in required):
        logger.debug("R2 credentials not configured, using local storage")
        return None

    return R2Storage(
        account_id=config["r2_account_id"],
        access_key_id=config["r2_access_key_id"],
        secret_access_key=config["r2_secret_access_key"],
        bucket_name=config["r2_bucket_name"],
    )
