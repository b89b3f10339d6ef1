"""
Video upload API endpoints.

The upload endpoint takes a multipart form with a single "video" file
part for an existing video record:
1. Caller is authenticated from the bearer token and must own the record
2. File must be an MP4 of at most 1 GiB
3. Server probes the aspect ratio and remuxes for fast start
4. Processed file goes to S3 under {landscape|portrait|other}/{id}.mp4
5. Record's videoURL is set to the object's public URL

All validation and processing errors are raised by the core handler and
rendered by the VideoUploadError exception handler in main.py.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.videos.models import Video
from ..dependencies import UploadHandlerDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class VideoResponse(BaseModel):
    """A video record as returned to clients."""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID = Field(description="Video identifier")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    title: str = Field(description="Video title")
    description: str = Field(description="Video description")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailURL")
    video_url: Optional[str] = Field(None, alias="videoURL", description="Public URL of the processed video")
    user_id: UUID = Field(alias="userID", description="Owner of the video")

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            created_at=video.created_at,
            updated_at=video.updated_at,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
            user_id=video.user_id,
        )


class ErrorResponse(BaseModel):
    error: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Bad video id or invalid file"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Caller does not own the video"},
    404: {"model": ErrorResponse, "description": "Video not found"},
}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/video_upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload video file",
    description="Upload an MP4 for an existing video record, process it for fast start and store it in S3",
    responses={
        **ERROR_RESPONSES,
        500: {"model": ErrorResponse, "description": "Processing or storage failure"},
    },
)
async def upload_video(
    video_id: str,
    request: Request,
    handler: UploadHandlerDep,
) -> VideoResponse:
    """
    Upload the video file for a record and return the updated record.

    The multipart body is read through request.form() only after the
    caller has been authorized, so the form isn't declared as a
    parameter here.
    """
    video = await handler.upload_video(video_id, request.headers, request.form)
    return VideoResponse.from_video(video)


@router.get(
    "/videos/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Get video",
    description="Fetch a video record owned by the caller",
    responses=ERROR_RESPONSES,
)
async def get_video(
    video_id: str,
    request: Request,
    handler: UploadHandlerDep,
) -> VideoResponse:
    video = handler.get_owned_video(video_id, request.headers)
    return VideoResponse.from_video(video)
