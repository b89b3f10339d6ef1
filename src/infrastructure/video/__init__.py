"""
Video processing infrastructure.

Handles server-side video processing using FFmpeg:
- Aspect ratio probing (ffprobe)
- Fast-start remuxing (ffmpeg, stream copy)
"""

from .processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    VideoProcessor,
    create_video_processor,
    fast_start_output_path,
)

__all__ = [
    "FFmpegVideoProcessor",
    "MockVideoProcessor",
    "VideoProcessor",
    "create_video_processor",
    "fast_start_output_path",
]
