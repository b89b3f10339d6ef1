"""
Upload orchestration for a single video record.

The flow is strictly linear:
authenticate -> authorize -> validate upload -> write temp file ->
probe aspect ratio -> fast-start transcode -> upload to object storage ->
update record -> remove temp files.

Every step either succeeds or raises one of the errors in
core.videos.errors. Nothing is retried, and the record's video_url is
only written after the storage upload has completed.

The handler knows nothing about FastAPI, boto3 or Snowflake. All of its
collaborators are injected at construction time, together with an
explicit UploadConfig.
"""

import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, runtime_checkable
from uuid import UUID

from .errors import BadRequestError, ForbiddenError, NotFoundError
from .models import AspectRatio, Video, build_storage_key

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = 1 << 30  # 1 GiB
VIDEO_CONTENT_TYPE = "video/mp4"
VIDEO_FORM_FIELD = "video"
CHUNK_SIZE = 1024 * 1024


@dataclass
class UploadConfig:
    """Settings the upload flow needs, passed in explicitly."""
    jwt_secret: str
    s3_bucket: str
    s3_region: str
    tmp_dir: str = field(default_factory=tempfile.gettempdir)
    max_upload_size: int = MAX_UPLOAD_SIZE

    def public_url(self, key: str) -> str:
        return f"https://{self.s3_bucket}.s3.{self.s3_region}.amazonaws.com/{key}"


# ---------------------------------------------------------------------------
# Collaborator Protocols
# ---------------------------------------------------------------------------

Authenticator = Callable[[Mapping[str, str], str], UUID]
FormLoader = Callable[[], Awaitable[Mapping[str, Any]]]


class VideoStore(Protocol):
    """Record store keyed by video id."""

    def get_video(self, video_id: UUID) -> Optional[Video]: ...

    def update_video(self, video: Video) -> None: ...


class ObjectStorage(Protocol):
    """Durable blob storage, written once per upload."""

    async def put_object(self, key: str, file_path: str, content_type: str) -> None: ...


class MediaProcessor(Protocol):
    """The two external media tools the upload depends on."""

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio: ...

    async def process_for_fast_start(self, file_path: str) -> str: ...


@runtime_checkable
class UploadedFile(Protocol):
    """
    A file part from a multipart form.

    Matches starlette's UploadFile. Plain text fields (str) do not
    satisfy it, which is how a wrong-shaped "video" field is detected.
    """
    filename: Optional[str]
    size: Optional[int]

    @property
    def content_type(self) -> Optional[str]: ...

    async def read(self, size: int = -1) -> bytes: ...


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

def parse_video_id(raw_id: Optional[str]) -> UUID:
    """Validate the path parameter. Anything but a UUID is a bad request."""
    if not raw_id or not raw_id.strip():
        raise BadRequestError("Invalid video ID")
    try:
        return UUID(raw_id.strip())
    except ValueError:
        raise BadRequestError("Invalid video ID")


def _remove_file(path: str) -> None:
    Path(path).unlink(missing_ok=True)


class UploadHandler:
    """
    Runs one upload request end to end.

    Stateless between requests, so one instance can serve many
    concurrent requests. Shared state lives only in the record store
    and object storage.
    """

    def __init__(
        self,
        config: UploadConfig,
        authenticate: Authenticator,
        videos: VideoStore,
        storage: ObjectStorage,
        processor: MediaProcessor,
    ) -> None:
        self._config = config
        self._authenticate = authenticate
        self._videos = videos
        self._storage = storage
        self._processor = processor

    def get_owned_video(self, raw_id: Optional[str], headers: Mapping[str, str]) -> Video:
        """
        Steps 1-4: parse id, authenticate, look up and check ownership.

        Raises BadRequestError, UnauthorizedError, NotFoundError or
        ForbiddenError, in that order of precedence.
        """
        video_id = parse_video_id(raw_id)
        user_id = self._authenticate(headers, self._config.jwt_secret)

        video = self._videos.get_video(video_id)
        if video is None:
            raise NotFoundError("Video not found")

        if not video.is_owned_by(user_id):
            logger.warning(
                "Rejected upload from non-owner",
                extra={"video_id": str(video_id), "user_id": str(user_id)}
            )
            raise ForbiddenError(f"User: {user_id} is not authorized to update this video")

        return video

    async def upload_video(
        self,
        raw_id: Optional[str],
        headers: Mapping[str, str],
        load_form: FormLoader,
    ) -> Video:
        """
        Upload a video file for an existing record and return the updated record.

        The form body is only parsed once the caller is known to own the
        record, so unauthorized requests never touch the disk.
        """
        video = self.get_owned_video(raw_id, headers)

        form = await load_form()
        upload = self._validate_upload(form.get(VIDEO_FORM_FIELD))

        logger.info(
            "Video upload started",
            extra={
                "video_id": str(video.id),
                "size_bytes": upload.size,
                "content_type": upload.content_type,
            }
        )

        temp_path = self._temp_path(video.id)
        processed_path: Optional[str] = None

        try:
            await self._write_temp_file(upload, temp_path)

            aspect_ratio = await self._processor.get_aspect_ratio(temp_path)
            processed_path = await self._processor.process_for_fast_start(temp_path)

            key = build_storage_key(aspect_ratio, video.id)
            await self._storage.put_object(key, processed_path, VIDEO_CONTENT_TYPE)

            video.video_url = self._config.public_url(key)
            self._videos.update_video(video)

            logger.info(
                "Video upload complete",
                extra={"video_id": str(video.id), "key": key, "aspect_ratio": aspect_ratio.value}
            )
        finally:
            await self._remove_temp_files(temp_path, processed_path)

        return video

    def _validate_upload(self, part: Any) -> UploadedFile:
        """Steps 5-7: shape, size and media type of the uploaded part."""
        if not isinstance(part, UploadedFile):
            raise BadRequestError("Video file missing")

        if part.size is None:
            raise BadRequestError("Could not determine video file size")

        if part.size > self._config.max_upload_size:
            raise BadRequestError("Video file exceeds the maximum allowed size of 1GB")

        if part.content_type != VIDEO_CONTENT_TYPE:
            raise BadRequestError("Invalid file type. Only MP4 allowed.")

        return part

    def _temp_path(self, video_id: UUID) -> str:
        return os.path.join(self._config.tmp_dir, f"{video_id}.mp4")

    async def _write_temp_file(self, upload: UploadedFile, path: str) -> None:
        """
        Stream the part to disk, replacing whatever was at path.

        Disk I/O runs in worker threads.
        """
        written = 0
        f = await asyncio.to_thread(open, path, "wb")
        try:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                await asyncio.to_thread(f.write, chunk)
                written += len(chunk)
        finally:
            await asyncio.to_thread(f.close)

        logger.debug("Wrote temp video file", extra={"path": path, "size_bytes": written})

    async def _remove_temp_files(self, *paths: Optional[str]) -> None:
        """
        Delete temp files concurrently.

        Failures are logged and dropped; they never fail the request.
        """
        targets = [p for p in paths if p]
        results = await asyncio.gather(
            *(asyncio.to_thread(_remove_file, p) for p in targets),
            return_exceptions=True,
        )
        for path, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Failed to remove temp file",
                    extra={"path": path, "error": str(result)}
                )
