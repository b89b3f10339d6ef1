"""
Object storage client for processed videos.

Uploads go to an S3 bucket. Each processed video is written exactly once
under its {aspect}/{video_id}.mp4 key and then served from the bucket's
public URL.

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3 storage.

    Credentials may be left empty to fall back to boto3's default
    credential chain (env vars, instance profile, ~/.aws).
    """
    bucket_name: str
    region: str
    access_key_id: str = ""
    secret_access_key: str = ""
    endpoint_url: Optional[str] = None


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def put_object(
        self,
        key: str,
        file_path: str,
        content_type: str,
    ) -> None:
        """Upload a local file under key. Raises StorageError on failure."""
        ...


class S3StorageClient:
    """
    AWS S3 object storage client.

    boto3 is synchronous, so uploads run in a worker thread to keep the
    event loop free while large files are transferred.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize S3 client with boto3.

        We import boto3 here (not at module level) because mock mode
        doesn't need it.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._config = config

        boto_config = Config(signature_version='s3v4')

        client_kwargs = {
            'region_name': config.region,
            'config': boto_config,
        }
        if config.endpoint_url:
            client_kwargs['endpoint_url'] = config.endpoint_url
        if config.access_key_id and config.secret_access_key:
            client_kwargs['aws_access_key_id'] = config.access_key_id
            client_kwargs['aws_secret_access_key'] = config.secret_access_key

        self._s3_client = boto3.client('s3', **client_kwargs)

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
            }
        )

    async def put_object(
        self,
        key: str,
        file_path: str,
        content_type: str,
    ) -> None:
        """
        Upload a file to S3 and wait for it to complete.

        upload_file switches to multipart transfers for large files on
        its own. There is no resume: a failed upload fails the request.
        """
        try:
            await asyncio.to_thread(
                self._s3_client.upload_file,
                file_path,
                self._config.bucket_name,
                key,
                ExtraArgs={'ContentType': content_type},
            )

            logger.info(
                "Uploaded object",
                extra={"key": key, "bucket": self._config.bucket_name}
            )

        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are kept in a dictionary keyed by storage key, along with
    their content type, so tests can assert on what was uploaded.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        # {key: (bytes, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def put_object(
        self,
        key: str,
        file_path: str,
        content_type: str,
    ) -> None:
        """Read the file and keep its bytes in memory."""
        try:
            data = Path(file_path).read_bytes()
        except OSError as e:
            raise StorageError(f"Upload failed: {e}")

        self._objects[key] = (data, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    # Helper methods for testing
    def _get_object(self, key: str) -> Optional[tuple[bytes, str]]:
        return self._objects.get(key)

    def _keys(self) -> list[str]:
        return list(self._objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
