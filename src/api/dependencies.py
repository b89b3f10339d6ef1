"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Routes never instantiate their own collaborators, so
tests can swap any of them through app.dependency_overrides.

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Generator

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.videos.upload import UploadHandler
from ..infrastructure.auth.tokens import authenticate
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.video.processor import VideoProcessor, create_video_processor

logger = logging.getLogger(__name__)

# Global mock instances (shared across requests for local development)
_mock_storage_client = None
_mock_snowflake_connection = None
_video_processor = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_video_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[VideoRepository, None, None]:
    """
    Provide VideoRepository with database connection.

    This is a generator function so the connection is closed after the
    request. In mock mode one in-memory connection is reused across
    requests so records persist for the life of the process.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")

        yield VideoRepository(_mock_snowflake_connection)
    else:
        config = SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            private_key_base64=settings.snowflake_private_key_base64,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        )

        with create_snowflake_connection(config=config) as conn:
            logger.debug("Created VideoRepository with Snowflake connection")
            yield VideoRepository(conn)


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for processed video uploads.

    Returns either S3 client or mock client based on settings.
    """
    global _mock_storage_client

    if settings.s3_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client")
        return _mock_storage_client

    config = StorageConfig(
        bucket_name=settings.s3_bucket,
        region=settings.s3_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        endpoint_url=settings.s3_endpoint_url,
    )
    return create_storage_client(config=config)


def get_video_processor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> VideoProcessor:
    """
    Provide the ffmpeg-backed processor.

    Built once per process; construction runs `ffmpeg -version`.
    """
    global _video_processor

    if _video_processor is None:
        _video_processor = create_video_processor(
            mock_mode=settings.video_processor_mock_mode,
            ffmpeg_path=settings.ffmpeg_path,
            ffprobe_path=settings.ffprobe_path,
            timeout_seconds=settings.processing_timeout_seconds,
        )
    return _video_processor


def get_upload_handler(
    settings: Annotated[Settings, Depends(get_settings)],
    repository: Annotated[VideoRepository, Depends(get_video_repository)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    processor: Annotated[VideoProcessor, Depends(get_video_processor)],
) -> UploadHandler:
    """Assemble the upload flow from configuration and collaborators."""
    return UploadHandler(
        config=settings.upload_config(),
        authenticate=authenticate,
        videos=repository,
        storage=storage,
        processor=processor,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
VideoRepositoryDep = Annotated[VideoRepository, Depends(get_video_repository)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
VideoProcessorDep = Annotated[VideoProcessor, Depends(get_video_processor)]
UploadHandlerDep = Annotated[UploadHandler, Depends(get_upload_handler)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
