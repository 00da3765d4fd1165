"""
Presign Service Test Suite for Tubely

Read paths hand out presigned copies of video records; the stored
``bucket,key`` reference must never be modified or written back.
"""

from unittest.mock import AsyncMock
from urllib.parse import urlparse

import pytest

from tubely.models.video import ObjectReference, ReferenceFormatError, Video
from tubely.services.presign_service import PresignService
from tubely.services.storage_service import StorageOperationError, StorageService


@pytest.fixture
def uploaded_video(sample_video: Video) -> Video:
    sample_video.video_url = "test-bucket,landscape/Zk3Q_abc-123.mp4"
    return sample_video


class TestPresignReference:
    @pytest.mark.asyncio
    async def test_url_points_at_reference(self, presign_service: PresignService) -> None:
        url = await presign_service.presign_reference(
            ObjectReference("test-bucket", "portrait/abc.mp4")
        )

        assert urlparse(url).path == "/test-bucket/portrait/abc.mp4"
        assert "X-Amz-Expires=600" in url

    @pytest.mark.asyncio
    async def test_uses_configured_expiration(self, storage_service: StorageService) -> None:
        presigner = PresignService(storage_service, expiration=120)

        url = await presigner.presign_reference(ObjectReference("test-bucket", "other/a.mp4"))

        assert "X-Amz-Expires=120" in url


class TestSignVideo:
    """Test suite for PresignService.sign_video."""

    @pytest.mark.asyncio
    async def test_returns_presigned_copy(
        self, presign_service: PresignService, uploaded_video: Video
    ) -> None:
        signed = await presign_service.sign_video(uploaded_video)

        assert signed is not uploaded_video
        assert signed.id == uploaded_video.id
        assert urlparse(signed.video_url).path == "/test-bucket/landscape/Zk3Q_abc-123.mp4"
        assert uploaded_video.video_url == "test-bucket,landscape/Zk3Q_abc-123.mp4"

    @pytest.mark.asyncio
    async def test_signing_twice_targets_same_object(
        self, presign_service: PresignService, uploaded_video: Video
    ) -> None:
        first = await presign_service.sign_video(uploaded_video)
        second = await presign_service.sign_video(uploaded_video)

        assert urlparse(first.video_url).path == urlparse(second.video_url).path

    @pytest.mark.asyncio
    async def test_video_without_upload_is_unchanged(
        self, presign_service: PresignService, sample_video: Video
    ) -> None:
        signed = await presign_service.sign_video(sample_video)

        assert signed.video_url is None
        assert signed == sample_video

    @pytest.mark.asyncio
    async def test_corrupt_reference(
        self, presign_service: PresignService, sample_video: Video
    ) -> None:
        sample_video.video_url = "https://legacy.example.com/video.mp4"

        with pytest.raises(ReferenceFormatError):
            await presign_service.sign_video(sample_video)

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, uploaded_video: Video) -> None:
        storage = AsyncMock(spec=StorageService)
        storage.generate_presigned_download_url.side_effect = StorageOperationError("boom")
        presigner = PresignService(storage, expiration=600)

        with pytest.raises(StorageOperationError):
            await presigner.sign_video(uploaded_video)

    @pytest.mark.asyncio
    async def test_sign_videos(
        self, presign_service: PresignService, uploaded_video: Video, owner_id: str
    ) -> None:
        draft = Video(user_id=owner_id, title="Draft")

        signed = await presign_service.sign_videos([uploaded_video, draft])

        assert [video.id for video in signed] == [uploaded_video.id, draft.id]
        assert signed[0].video_url.startswith("https://")
        assert signed[1].video_url is None


class TestReadEndpoints:
    """GET endpoints presign on the way out and never write the record."""

    def test_get_video(self, client, auth_headers, video_store, uploaded_video: Video) -> None:
        response = client.get(f"/api/v1/videos/{uploaded_video.id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == uploaded_video.id
        assert urlparse(body["video_url"]).path == "/test-bucket/landscape/Zk3Q_abc-123.mp4"
        assert uploaded_video.video_url == "test-bucket,landscape/Zk3Q_abc-123.mp4"
        video_store.update.assert_not_awaited()

    def test_get_video_of_other_user(
        self, client, other_auth_headers, video_store, uploaded_video: Video
    ) -> None:
        response = client.get(f"/api/v1/videos/{uploaded_video.id}", headers=other_auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "unauthorized"

    def test_list_videos(self, client, auth_headers, video_store, uploaded_video: Video) -> None:
        response = client.get("/api/v1/videos", headers=auth_headers)

        assert response.status_code == 200
        [body] = response.json()
        assert body["video_url"].startswith("https://")
        video_store.update.assert_not_awaited()

    def test_corrupt_reference_is_500(
        self, client, auth_headers, video_store, sample_video: Video
    ) -> None:
        sample_video.video_url = "not-a-reference"

        response = client.get(f"/api/v1/videos/{sample_video.id}", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "presign_failed"

    def test_create_video(self, client, auth_headers, video_store, owner_id: str) -> None:
        response = client.post(
            "/api/v1/videos",
            json={"title": "  New clip ", "description": "desc"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "New clip"
        assert body["user_id"] == owner_id
        assert body["video_url"] is None
        video_store.create.assert_awaited_once()
