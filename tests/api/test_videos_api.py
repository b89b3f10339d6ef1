"""
API tests for the video endpoints.

The real app is used with its collaborators swapped through
app.dependency_overrides: in-memory Snowflake and S3 mocks, a processor
that copies instead of running ffmpeg, and settings pointing temp files
at tmp_path.
"""

import os
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_storage_client,
    get_video_processor,
    get_video_repository,
)
from src.config.settings import Settings, get_settings
from src.core.videos.errors import ProcessingError
from src.main import app
from src.infrastructure.video.processor import MockVideoProcessor


class BrokenProbe(MockVideoProcessor):
    async def get_aspect_ratio(self, file_path):
        raise ProcessingError("ffprobe error: bad file")


@pytest.fixture
def settings(tmp_path, jwt_secret):
    return Settings(
        jwt_secret=jwt_secret,
        s3_bucket="tubely-test",
        s3_region="us-east-2",
        tmp_dir=str(tmp_path),
        snowflake_mock_mode=True,
        s3_mock_mode=True,
        video_processor_mock_mode=True,
    )


@pytest.fixture
def processor():
    return MockVideoProcessor()


@pytest.fixture
def client(settings, repository, storage, processor):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_video_repository] = lambda: repository
    app.dependency_overrides[get_storage_client] = lambda: storage
    app.dependency_overrides[get_video_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, video_id, headers, content=b"fake mp4 bytes", content_type="video/mp4"):
    return client.post(
        f"/api/video_upload/{video_id}",
        headers=headers,
        files={"video": ("boots.mp4", content, content_type)},
    )


class TestUploadEndpoint:

    def test_owner_upload_returns_updated_record(self, client, video, auth_headers, repository, storage, tmp_path):
        r = upload(client, video.id, auth_headers)

        assert r.status_code == 200, r.text
        body = r.json()
        expected_url = f"https://tubely-test.s3.us-east-2.amazonaws.com/landscape/{video.id}.mp4"
        assert body["videoURL"] == expected_url
        assert body["id"] == str(video.id)
        assert body["userID"] == str(video.user_id)
        assert repository.get_video(video.id).video_url == expected_url
        assert storage._get_object(f"landscape/{video.id}.mp4")[0] == b"fake mp4 bytes"
        assert os.listdir(tmp_path) == []

    def test_missing_token(self, client, video):
        r = upload(client, video.id, {})

        assert r.status_code == 401
        assert "error" in r.json()

    def test_invalid_token(self, client, video):
        r = upload(client, video.id, {"Authorization": "Bearer not-a-jwt"})

        assert r.status_code == 401

    def test_non_owner(self, client, video, token_for, storage, repository):
        r = upload(client, video.id, token_for(uuid4()))

        assert r.status_code == 403
        assert storage._keys() == []
        assert repository.get_video(video.id).video_url is None

    def test_unknown_video(self, client, auth_headers):
        r = upload(client, uuid4(), auth_headers)

        assert r.status_code == 404
        assert r.json() == {"error": "Video not found"}

    def test_malformed_video_id(self, client, auth_headers):
        r = upload(client, "not-a-uuid", auth_headers)

        assert r.status_code == 400
        assert r.json() == {"error": "Invalid video ID"}

    def test_wrong_media_type(self, client, video, auth_headers):
        r = upload(client, video.id, auth_headers, content_type="video/quicktime")

        assert r.status_code == 400
        assert "MP4" in r.json()["error"]

    def test_text_field_instead_of_file(self, client, video, auth_headers):
        r = client.post(
            f"/api/video_upload/{video.id}",
            headers=auth_headers,
            data={"video": "boots.mp4"},
        )

        assert r.status_code == 400
        assert r.json() == {"error": "Video file missing"}

    def test_malformed_multipart_body(self, client, video, auth_headers):
        r = client.post(
            f"/api/video_upload/{video.id}",
            headers={**auth_headers, "Content-Type": "multipart/form-data"},
            content=b"not a multipart body",
        )

        assert r.status_code == 400
        assert r.json() == {"error": "Missing boundary in multipart."}

    @pytest.mark.parametrize("processor", [BrokenProbe()])
    def test_processing_failure_is_a_server_error(self, client, video, auth_headers, repository, tmp_path):
        r = upload(client, video.id, auth_headers)

        assert r.status_code == 500
        assert r.json() == {"error": "Couldn't process video"}
        assert repository.get_video(video.id).video_url is None
        assert os.listdir(tmp_path) == []


class TestGetVideoEndpoint:

    def test_owner_can_read_record(self, client, video, auth_headers):
        r = client.get(f"/api/videos/{video.id}", headers=auth_headers)

        assert r.status_code == 200
        assert r.json()["title"] == "Boots"
        assert r.json()["videoURL"] is None

    def test_other_user_is_forbidden(self, client, video, token_for):
        r = client.get(f"/api/videos/{video.id}", headers=token_for(uuid4()))

        assert r.status_code == 403


class TestHealthEndpoint:

    def test_liveness_reports_mock_modes(self, client):
        r = client.get("/health")

        assert r.status_code == 200
        assert r.json()["details"]["mock_mode"] == {"snowflake": True, "s3": True, "ffmpeg": True}

    def test_readiness_with_mocks(self, client):
        r = client.get("/health/ready")

        assert r.status_code == 200
        assert r.json()["status"] == "ready"
