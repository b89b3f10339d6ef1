"""
Snowflake repository for video records.

The repository:
1. Translates between the Video domain model and database rows
2. Encapsulates all SQL queries
3. Provides a clean interface for the upload flow

The application code never writes SQL directly; it asks the repository
for what it needs in domain terms.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import UUID

from src.core.videos.models import Video

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "TUBELY"
    schema: str = "PUBLIC"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


VIDEO_COLUMNS = (
    "id, created_at, updated_at, title, description, "
    "thumbnail_url, video_url, user_id"
)


class VideoRepository:
    """
    Repository for video record persistence.

    - get_video: Load a record by id (None if it doesn't exist)
    - update_video: Persist changes to an existing record
    - create_video: Insert a new record (seeding, admin tooling)
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def get_video(self, video_id: UUID) -> Optional[Video]:
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT {VIDEO_COLUMNS} FROM videos WHERE id = %s",
                (str(video_id),)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return self._row_to_video(row)
        finally:
            cursor.close()

    def update_video(self, video: Video) -> None:
        """
        Write the mutable fields of a record and bump updated_at.

        Ownership and creation time never change here.
        """
        video.updated_at = datetime.now(timezone.utc)
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                UPDATE videos
                SET title = %s,
                    description = %s,
                    thumbnail_url = %s,
                    video_url = %s,
                    updated_at = %s
                WHERE id = %s
            """, (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.updated_at,
                str(video.id),
            ))
            self._conn.commit()

            logger.debug("Updated video record", extra={"video_id": str(video.id)})

        except Exception as e:
            logger.error(
                "Failed to update video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def create_video(self, video: Video) -> Video:
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO videos ({VIDEO_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                str(video.id),
                video.created_at,
                video.updated_at,
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                str(video.user_id),
            ))
            self._conn.commit()

            logger.info(
                "Created video record",
                extra={"video_id": str(video.id), "user_id": str(video.user_id)}
            )
            return video

        except Exception as e:
            logger.error(
                "Failed to create video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def _row_to_video(self, row: tuple) -> Video:
        """Build a Video from a row in VIDEO_COLUMNS order."""
        (
            video_id,
            created_at,
            updated_at,
            title,
            description,
            thumbnail_url,
            video_url,
            user_id,
        ) = row

        return Video(
            id=UUID(str(video_id)),
            user_id=UUID(str(user_id)),
            title=title or "",
            description=description or "",
            thumbnail_url=thumbnail_url,
            video_url=video_url,
            created_at=created_at,
            updated_at=updated_at,
        )
