"""
Error taxonomy for the video upload flow.

Each error carries the HTTP status it maps to, so the API layer can
render any of them with a single exception handler. The core raises
these at the point of detection and never catches them itself.
"""


class VideoUploadError(Exception):
    """Base class for errors that terminate an upload request."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(VideoUploadError):
    """Missing parameters, or a missing, oversized or wrong-type file."""
    status_code = 400


class UnauthorizedError(VideoUploadError):
    """Missing or invalid bearer credential."""
    status_code = 401


class ForbiddenError(VideoUploadError):
    """Authenticated user does not own the video."""
    status_code = 403


class NotFoundError(VideoUploadError):
    """Unknown video id."""
    status_code = 404


class ProcessingError(VideoUploadError):
    """ffprobe/ffmpeg failed or produced unusable output. Never retried."""
    status_code = 500
