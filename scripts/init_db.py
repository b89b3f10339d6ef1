#!/usr/bin/env python3
"""
Create the videos table in Snowflake and optionally seed a record.

Records are normally created by another service; seeding is for trying
the upload endpoint locally. With --seed, a video owned by a new (or
given) user is inserted and an access token for that user is printed.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --seed --title "Boots demo"
    python scripts/init_db.py --seed --user-id 6f0c...  --dry-run

Requires:
    - .env file with Snowflake credentials and JWT_SECRET
"""

import sys
import uuid
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.settings import get_settings
from src.core.videos.models import Video
from src.infrastructure.auth.tokens import make_jwt
from src.infrastructure.snowflake.client import create_snowflake_connection
from src.infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository

CREATE_VIDEOS_TABLE = """
CREATE TABLE IF NOT EXISTS videos (
    id VARCHAR(36) PRIMARY KEY,
    created_at TIMESTAMP_TZ NOT NULL,
    updated_at TIMESTAMP_TZ NOT NULL,
    title VARCHAR NOT NULL,
    description VARCHAR,
    thumbnail_url VARCHAR,
    video_url VARCHAR,
    user_id VARCHAR(36) NOT NULL
)
"""


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create the videos table and seed a record')
    parser.add_argument('--seed', action='store_true', help='Insert a sample video record')
    parser.add_argument('--user-id', default=None, help='Owner of the seeded video (default: new UUID)')
    parser.add_argument('--title', default='Sample video', help='Title of the seeded video')
    parser.add_argument('--dry-run', action='store_true', help='Print what would happen, touch nothing')
    args = parser.parse_args()

    settings = get_settings()
    user_id = uuid.UUID(args.user_id) if args.user_id else uuid.uuid4()
    video = Video(user_id=user_id, title=args.title)

    if args.dry_run:
        print(CREATE_VIDEOS_TABLE.strip())
        if args.seed:
            print(f"\nWould insert video {video.id} owned by {user_id}")
        sys.exit(0)

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

    try:
        with create_snowflake_connection(config=config) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(CREATE_VIDEOS_TABLE)
                conn.commit()
            finally:
                cursor.close()
            print("videos table ready")

            if args.seed:
                VideoRepository(conn).create_video(video)
                print(f"Created video {video.id} owned by {user_id}")
                if settings.jwt_secret:
                    print(f"Access token: {make_jwt(user_id, settings.jwt_secret)}")
                else:
                    print("JWT_SECRET not set, no token generated")

    except Exception as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
