"""
Unit tests for the upload orchestration.

The handler runs against the in-memory repository and storage, with
processors that either copy the file (MockVideoProcessor) or fail on
purpose. Temp files land in pytest's tmp_path, so every test can check
that nothing is left behind.
"""

import asyncio
import json
import os
import subprocess
from pathlib import Path
from uuid import uuid4

import pytest

from src.core.videos import upload as upload_module
from src.core.videos.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ProcessingError,
    UnauthorizedError,
)
from src.core.videos.models import AspectRatio
from src.core.videos.upload import CHUNK_SIZE, MAX_UPLOAD_SIZE, UploadHandler
from src.infrastructure.auth.tokens import authenticate
from src.infrastructure.storage.client import StorageError
from src.infrastructure.video.processor import FFmpegVideoProcessor, MockVideoProcessor


class FailingProbe(MockVideoProcessor):
    async def get_aspect_ratio(self, file_path):
        raise ProcessingError("ffprobe error: bad file")


class FailingTranscode(MockVideoProcessor):
    async def process_for_fast_start(self, file_path):
        raise ProcessingError("FFmpeg error: broken")


class RecordingProcessor(MockVideoProcessor):
    """Remembers what the temp file looked like when it was probed."""

    def __init__(self, aspect_ratio=AspectRatio.LANDSCAPE):
        super().__init__(aspect_ratio)
        self.probed = []

    async def get_aspect_ratio(self, file_path):
        with open(file_path, "rb") as f:
            self.probed.append((file_path, f.read()))
        return await super().get_aspect_ratio(file_path)


class FailingStorage:
    async def put_object(self, key, file_path, content_type):
        raise StorageError("Upload failed: connection reset")


@pytest.fixture
def make_handler(upload_config, repository, storage):
    def build(processor=None, storage_client=None):
        return UploadHandler(
            config=upload_config,
            authenticate=authenticate,
            videos=repository,
            storage=storage_client or storage,
            processor=processor or MockVideoProcessor(),
        )
    return build


def run(coro):
    return asyncio.run(coro)


class TestSuccessfulUpload:

    def test_landscape_upload_updates_record(
        self, make_handler, video, auth_headers, make_upload, form_loader, repository, storage, tmp_path
    ):
        handler = make_handler()
        upload = make_upload(b"fake mp4 bytes")

        result = run(handler.upload_video(str(video.id), auth_headers, form_loader({"video": upload})))

        expected_key = f"landscape/{video.id}.mp4"
        assert result.video_url == f"https://tubely-test.s3.us-east-2.amazonaws.com/{expected_key}"
        assert repository.get_video(video.id).video_url == result.video_url
        assert storage._get_object(expected_key) == (b"fake mp4 bytes", "video/mp4")

    def test_temp_files_are_removed(self, make_handler, video, auth_headers, make_upload, form_loader, tmp_path):
        run(make_handler().upload_video(str(video.id), auth_headers, form_loader({"video": make_upload()})))

        assert os.listdir(tmp_path) == []

    def test_portrait_key_prefix(self, make_handler, video, auth_headers, make_upload, form_loader, storage):
        handler = make_handler(processor=MockVideoProcessor(AspectRatio.PORTRAIT))

        run(handler.upload_video(str(video.id), auth_headers, form_loader({"video": make_upload()})))

        assert storage._keys() == [f"portrait/{video.id}.mp4"]

    def test_temp_file_is_named_after_video_and_overwritten(
        self, make_handler, video, auth_headers, make_upload, form_loader, tmp_path
    ):
        stale = tmp_path / f"{video.id}.mp4"
        stale.write_bytes(b"left over from a crashed request")
        processor = RecordingProcessor()

        run(make_handler(processor=processor).upload_video(
            str(video.id), auth_headers, form_loader({"video": make_upload(b"new")})
        ))

        assert processor.probed == [(str(stale), b"new")]

    def test_size_exactly_at_limit_is_accepted(self, make_handler, video, auth_headers, make_upload, form_loader):
        upload = make_upload(b"small", size=MAX_UPLOAD_SIZE)

        result = run(make_handler().upload_video(str(video.id), auth_headers, form_loader({"video": upload})))

        assert result.video_url is not None


class TestRejectedRequests:

    @pytest.mark.parametrize("raw_id", [None, "", "   ", "not-a-uuid"])
    def test_invalid_video_id(self, make_handler, auth_headers, form_loader, raw_id):
        with pytest.raises(BadRequestError, match="Invalid video ID"):
            run(make_handler().upload_video(raw_id, auth_headers, form_loader({})))

    def test_missing_token(self, make_handler, video, form_loader):
        with pytest.raises(UnauthorizedError):
            run(make_handler().upload_video(str(video.id), {}, form_loader({})))

    def test_unknown_video(self, make_handler, auth_headers, form_loader):
        with pytest.raises(NotFoundError):
            run(make_handler().upload_video(str(uuid4()), auth_headers, form_loader({})))

    def test_non_owner_is_forbidden_and_nothing_changes(
        self, make_handler, video, token_for, make_upload, form_loader, repository, storage, tmp_path
    ):
        load = form_loader({"video": make_upload()})

        with pytest.raises(ForbiddenError):
            run(make_handler().upload_video(str(video.id), token_for(uuid4()), load))

        assert load.calls == 0
        assert storage._keys() == []
        assert repository.get_video(video.id).video_url is None
        assert os.listdir(tmp_path) == []

    def test_missing_file_field(self, make_handler, video, auth_headers, form_loader):
        with pytest.raises(BadRequestError, match="missing"):
            run(make_handler().upload_video(str(video.id), auth_headers, form_loader({})))

    def test_text_field_instead_of_file(self, make_handler, video, auth_headers, form_loader):
        with pytest.raises(BadRequestError, match="missing"):
            run(make_handler().upload_video(str(video.id), auth_headers, form_loader({"video": "boots.mp4"})))

    def test_oversized_file_is_rejected_before_writing(
        self, make_handler, video, auth_headers, make_upload, form_loader, tmp_path
    ):
        upload = make_upload(b"small", size=MAX_UPLOAD_SIZE + 1)

        with pytest.raises(BadRequestError, match="maximum allowed size"):
            run(make_handler().upload_video(str(video.id), auth_headers, form_loader({"video": upload})))

        assert os.listdir(tmp_path) == []

    @pytest.mark.parametrize("content_type", ["video/quicktime", "video/MP4", "application/octet-stream", None])
    def test_non_mp4_media_type(self, make_handler, video, auth_headers, make_upload, form_loader, content_type):
        upload = make_upload(content_type=content_type)

        with pytest.raises(BadRequestError, match="Only MP4"):
            run(make_handler().upload_video(str(video.id), auth_headers, form_loader({"video": upload})))


class TestProcessingFailures:

    def test_probe_failure_cleans_up_and_leaves_record(
        self, make_handler, video, auth_headers, make_upload, form_loader, repository, storage, tmp_path
    ):
        handler = make_handler(processor=FailingProbe())

        with pytest.raises(ProcessingError, match="bad file"):
            run(handler.upload_video(str(video.id), auth_headers, form_loader({"video": make_upload()})))

        assert os.listdir(tmp_path) == []
        assert storage._keys() == []
        assert repository.get_video(video.id).video_url is None

    def test_transcode_failure_cleans_up(self, make_handler, video, auth_headers, make_upload, form_loader, tmp_path):
        with pytest.raises(ProcessingError, match="broken"):
            run(make_handler(processor=FailingTranscode()).upload_video(
                str(video.id), auth_headers, form_loader({"video": make_upload()})
            ))

        assert os.listdir(tmp_path) == []

    def test_storage_failure_does_not_update_record(
        self, make_handler, video, auth_headers, make_upload, form_loader, repository, tmp_path
    ):
        handler = make_handler(storage_client=FailingStorage())

        with pytest.raises(StorageError):
            run(handler.upload_video(str(video.id), auth_headers, form_loader({"video": make_upload()})))

        assert repository.get_video(video.id).video_url is None
        assert os.listdir(tmp_path) == []

    def test_ffmpeg_timeout_leaves_no_files(
        self, make_handler, video, auth_headers, make_upload, form_loader, monkeypatch, tmp_path
    ):
        def fake_run(cmd, **kwargs):
            if cmd[0] == "ffprobe":
                stdout = json.dumps({"streams": [{"width": 1920, "height": 1080}]})
                return subprocess.CompletedProcess(cmd, 0, stdout, "")
            Path(cmd[-1]).write_bytes(b"partial")
            raise subprocess.TimeoutExpired(cmd, 5)

        monkeypatch.setattr(subprocess, "run", fake_run)
        handler = make_handler(processor=FFmpegVideoProcessor(verify=False, timeout_seconds=5))

        with pytest.raises(ProcessingError, match="timed out"):
            run(handler.upload_video(str(video.id), auth_headers, form_loader({"video": make_upload()})))

        assert os.listdir(tmp_path) == []


class TestTempFiles:

    def test_upload_larger_than_one_chunk_is_written_intact(
        self, make_handler, video, auth_headers, make_upload, form_loader
    ):
        data = os.urandom(CHUNK_SIZE * 2 + 17)
        processor = RecordingProcessor()

        run(make_handler(processor=processor).upload_video(
            str(video.id), auth_headers, form_loader({"video": make_upload(data)})
        ))

        assert processor.probed[0][1] == data

    def test_failed_deletion_does_not_fail_request(
        self, make_handler, video, auth_headers, make_upload, form_loader, repository, monkeypatch, tmp_path
    ):
        original = tmp_path / f"{video.id}.mp4"
        real_remove = upload_module._remove_file

        def flaky_remove(path):
            if path == str(original):
                raise OSError("device busy")
            real_remove(path)

        monkeypatch.setattr(upload_module, "_remove_file", flaky_remove)

        result = run(make_handler().upload_video(str(video.id), auth_headers, form_loader({"video": make_upload()})))

        assert result.video_url is not None
        assert repository.get_video(video.id).video_url == result.video_url
        assert os.listdir(tmp_path) == [original.name]


class TestGetOwnedVideo:

    def test_owner_gets_record(self, make_handler, video, auth_headers):
        assert make_handler().get_owned_video(str(video.id), auth_headers).id == video.id

    def test_other_user_is_forbidden(self, make_handler, video, token_for):
        with pytest.raises(ForbiddenError):
            make_handler().get_owned_video(str(video.id), token_for(uuid4()))
