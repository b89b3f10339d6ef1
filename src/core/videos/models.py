"""
Domain models for uploaded videos.

These have no dependencies on the web framework, the database driver or
the storage SDK. Repositories and routes translate to and from them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class AspectRatio(Enum):
    """
    Orientation bucket derived from a video's width:height ratio.

    Only used as the storage key prefix, never persisted on the record.
    """
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


# open intervals: 16:9 is ~1.78, 9:16 is ~0.56
LANDSCAPE_RANGE = (1.7, 1.8)
PORTRAIT_RANGE = (0.5, 0.6)


def classify_aspect_ratio(width: int, height: int) -> AspectRatio:
    """
    Classify a frame size as landscape, portrait or other.

    Both bounds of each range are exclusive, so a ratio of exactly 1.7
    or 1.8 is OTHER.
    """
    if height <= 0:
        raise ValueError("height must be positive")

    ratio = width / height

    if LANDSCAPE_RANGE[0] < ratio < LANDSCAPE_RANGE[1]:
        return AspectRatio.LANDSCAPE
    if PORTRAIT_RANGE[0] < ratio < PORTRAIT_RANGE[1]:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Video:
    """
    A video record owned by a single user.

    Records are created elsewhere. The upload flow only ever sets
    video_url, once the processed file is in object storage.
    """
    user_id: UUID
    title: str = ""
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    @property
    def has_video(self) -> bool:
        return self.video_url is not None


def build_storage_key(aspect_ratio: AspectRatio, video_id: UUID) -> str:
    """Storage key for a processed upload: {aspect}/{id}.mp4"""
    return f"{aspect_ratio.value}/{video_id}.mp4"
