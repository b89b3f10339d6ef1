"""
Video upload domain: records, aspect classification and the upload flow.
"""

from .errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ProcessingError,
    UnauthorizedError,
    VideoUploadError,
)
from .models import AspectRatio, Video, build_storage_key, classify_aspect_ratio
from .upload import MAX_UPLOAD_SIZE, UploadConfig, UploadHandler

__all__ = [
    "AspectRatio",
    "BadRequestError",
    "ForbiddenError",
    "MAX_UPLOAD_SIZE",
    "NotFoundError",
    "ProcessingError",
    "UnauthorizedError",
    "UploadConfig",
    "UploadHandler",
    "Video",
    "VideoUploadError",
    "build_storage_key",
    "classify_aspect_ratio",
]
