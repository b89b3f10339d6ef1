"""
Shared fixtures.

Everything here is in-memory or under pytest's tmp_path: the mock
Snowflake connection, the mock storage client and a tmp dir for the
upload flow's temp files. No ffmpeg, network or database needed.
"""

import io
from typing import Optional
from uuid import uuid4

import pytest
from starlette.datastructures import Headers, UploadFile

from src.core.videos.models import Video
from src.core.videos.upload import UploadConfig
from src.infrastructure.auth.tokens import make_jwt
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories.videos import VideoRepository
from src.infrastructure.storage.client import MockStorageClient

JWT_SECRET = "test-secret"
S3_BUCKET = "tubely-test"
S3_REGION = "us-east-2"


def _make_upload(
    data: bytes = b"\x00\x00\x00\x18ftypmp42",
    content_type: Optional[str] = "video/mp4",
    size: Optional[int] = None,
    filename: str = "boots.mp4",
) -> UploadFile:
    """Build a multipart file part the way starlette hands it to us."""
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data) if size is None else size,
        filename=filename,
        headers=headers,
    )


def _form_loader(form: dict):
    """An async form loader that records whether it was called."""
    async def load():
        load.calls += 1
        return form
    load.calls = 0
    return load


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def connection():
    conn = MockSnowflakeConnection()
    yield conn
    conn._clear()


@pytest.fixture
def repository(connection):
    return VideoRepository(connection)


@pytest.fixture
def video(repository, owner_id) -> Video:
    return repository.create_video(
        Video(user_id=owner_id, title="Boots", description="A boot.dev mascot video")
    )


@pytest.fixture
def storage():
    return MockStorageClient()


@pytest.fixture
def upload_config(tmp_path) -> UploadConfig:
    return UploadConfig(
        jwt_secret=JWT_SECRET,
        s3_bucket=S3_BUCKET,
        s3_region=S3_REGION,
        tmp_dir=str(tmp_path),
    )


@pytest.fixture
def auth_headers(owner_id):
    return {"Authorization": f"Bearer {make_jwt(owner_id, JWT_SECRET)}"}


@pytest.fixture
def make_upload():
    return _make_upload


@pytest.fixture
def form_loader():
    return _form_loader


@pytest.fixture
def jwt_secret():
    return JWT_SECRET


@pytest.fixture
def token_for(jwt_secret):
    """Bearer headers for an arbitrary user."""
    def headers(user_id):
        return {"Authorization": f"Bearer {make_jwt(user_id, jwt_secret)}"}
    return headers
