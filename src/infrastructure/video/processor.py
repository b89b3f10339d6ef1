"""
Video processing service using FFmpeg.

Two operations back the upload flow:
1. Probe the first video stream's width/height and classify the aspect ratio
2. Rewrite the container for fast start (moov atom first) without re-encoding

Both shell out to the ffprobe/ffmpeg binaries and wait for them to exit.
The calls run in a worker thread so the event loop keeps serving other
requests while a large file is being processed.
"""

import asyncio
import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from src.core.videos.errors import ProcessingError
from src.core.videos.models import AspectRatio, classify_aspect_ratio

logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processed.mp4"


def fast_start_output_path(input_path: str) -> str:
    """Sibling path the fast-start copy is written to."""
    return f"{input_path}{PROCESSED_SUFFIX}"


class VideoProcessor(Protocol):
    """Protocol for video processing operations."""

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        """Probe the first video stream and classify its orientation."""
        ...

    async def process_for_fast_start(self, file_path: str) -> str:
        """Write a fast-start copy of the file and return its path."""
        ...


class FFmpegVideoProcessor:
    """
    Video processor using FFmpeg/FFprobe.

    Operates on files already on disk. The caller owns both the input
    and the returned output and is responsible for deleting them.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout_seconds: Optional[float] = 600,
        verify: bool = True,
    ):
        """
        Initialize processor with FFmpeg paths.

        Args:
            ffmpeg_path: Path to ffmpeg binary (default assumes it's in PATH)
            ffprobe_path: Path to ffprobe binary
            timeout_seconds: Upper bound on each subprocess; None waits forever
            verify: Check that ffmpeg runs before accepting requests
        """
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._timeout = timeout_seconds

        if verify:
            self._verify_ffmpeg()

    def _verify_ffmpeg(self) -> None:
        try:
            result = subprocess.run(
                [self._ffmpeg, "-version"],
                capture_output=True,
                text=True,
                timeout=5
            )
            if result.returncode != 0:
                raise RuntimeError("FFmpeg not working properly")
            logger.info("FFmpeg video processor initialized")
        except FileNotFoundError:
            raise RuntimeError(
                "FFmpeg not found. Install with: apt-get install ffmpeg"
            )

    async def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        """Run a command to completion, capturing stdout and stderr as text."""
        try:
            return await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout
            )
        except subprocess.TimeoutExpired:
            raise ProcessingError(f"{Path(cmd[0]).name} timed out after {self._timeout}s")
        except FileNotFoundError:
            raise ProcessingError(f"{cmd[0]} not found")

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        """
        Classify the file's first video stream as landscape, portrait or other.

        FFprobe is asked for just width and height of stream v:0 as JSON,
        e.g. {"streams": [{"width": 1920, "height": 1080}]}.
        """
        cmd = [
            self._ffprobe,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "json",
            file_path
        ]

        result = await self._run(cmd)

        if result.returncode != 0:
            logger.error(
                "FFprobe failed",
                extra={"path": file_path, "returncode": result.returncode}
            )
            raise ProcessingError(f"ffprobe error: {result.stderr}")

        try:
            info = json.loads(result.stdout)
        except json.JSONDecodeError:
            raise ProcessingError("ffprobe returned unparseable output")

        streams = info.get("streams") or []
        if not streams:
            raise ProcessingError("No video streams found")

        width = streams[0].get("width")
        height = streams[0].get("height")
        if not width or not height:
            raise ProcessingError("Video stream has no usable dimensions")

        aspect_ratio = classify_aspect_ratio(int(width), int(height))

        logger.info(
            "Probed video aspect ratio",
            extra={
                "path": file_path,
                "resolution": f"{width}x{height}",
                "aspect_ratio": aspect_ratio.value,
            }
        )

        return aspect_ratio

    async def process_for_fast_start(self, file_path: str) -> str:
        """
        Move the moov atom to the front so playback can start before download ends.

        -codec copy keeps the streams as-is (no re-encode) and
        -map_metadata 0 carries over the input's metadata.
        """
        output_path = fast_start_output_path(file_path)

        cmd = [
            self._ffmpeg,
            "-y",  # overwrite
            "-i", file_path,
            "-movflags", "faststart",
            "-map_metadata", "0",
            "-codec", "copy",
            "-f", "mp4",
            output_path
        ]

        try:
            result = await self._run(cmd)
        except ProcessingError:
            # killed mid-write or never started
            Path(output_path).unlink(missing_ok=True)
            raise

        if result.returncode != 0:
            # don't leave a half-written output behind
            Path(output_path).unlink(missing_ok=True)
            logger.error(
                "FFmpeg fast start failed",
                extra={"path": file_path, "returncode": result.returncode}
            )
            raise ProcessingError(f"FFmpeg error: {result.stderr}")

        logger.info("Processed video for fast start", extra={"path": output_path})

        return output_path


class MockVideoProcessor:
    """
    Mock video processor for local development without FFmpeg.

    Reports a fixed aspect ratio and "processes" by copying the file,
    so the rest of the upload flow (storage, cleanup) still runs.
    """

    def __init__(self, aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE):
        self._aspect_ratio = aspect_ratio
        logger.info("Initialized mock video processor")

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        """Return the configured aspect ratio."""
        return self._aspect_ratio

    async def process_for_fast_start(self, file_path: str) -> str:
        """Copy the input to the processed path."""
        output_path = fast_start_output_path(file_path)
        await asyncio.to_thread(shutil.copyfile, file_path, output_path)
        return output_path


def create_video_processor(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
    timeout_seconds: Optional[float] = 600,
) -> VideoProcessor:
    """
    Factory function for video processor.

    Args:
        mock_mode: If True, return mock processor (no FFmpeg required)

    Returns:
        VideoProcessor implementation
    """
    if mock_mode:
        return MockVideoProcessor()

    return FFmpegVideoProcessor(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        timeout_seconds=timeout_seconds,
    )
