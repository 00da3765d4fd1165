"""
Pytest Configuration and Test Fixtures for the Tubely Backend

Provides:
- Settings rooted in a per-test temporary directory
- A real boto3 S3 client with dummy credentials (presigning works offline)
  and a botocore Stubber for put_object
- An AsyncMock video record store
- Fake prober/remuxer implementations standing in for ffprobe/ffmpeg
- In-memory PNG/JPEG/GIF images generated with Pillow
- A FastAPI TestClient with dependency overrides and a valid bearer token
"""

import os
import shutil
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from io import BytesIO
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock
from uuid import uuid4

import boto3
import pytest
from botocore.client import Config
from botocore.stub import Stubber
from fastapi.testclient import TestClient
from PIL import Image
from starlette.datastructures import Headers, UploadFile

from tubely.api.v1.dependencies import (
    get_presign_service,
    get_storage_service,
    get_upload_service,
    get_video_store,
)
from tubely.config import Settings, get_settings
from tubely.core.auth import create_access_token
from tubely.main import create_app
from tubely.models.video import Video
from tubely.services.asset_store import LocalAssetStore
from tubely.services.media_service import RemuxFailedError, VideoGeometry
from tubely.services.presign_service import PresignService
from tubely.services.storage_service import StorageService
from tubely.services.upload_service import VideoUploadService
from tubely.services.video_store import VideoStore


TEST_BUCKET = "test-bucket"
TEST_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with all local paths under tmp_path."""
    return Settings(
        app_env="testing",
        debug=True,
        jwt_secret=TEST_SECRET,
        mongodb_uri="mongodb://localhost:27017",
        mongodb_db_name="tubely_test",
        s3_access_key_id="testing",
        s3_secret_access_key="testing",
        s3_bucket_name=TEST_BUCKET,
        s3_region="us-east-1",
        assets_root=str(tmp_path / "assets"),
        public_base_url="http://localhost:8091",
        upload_temp_dir=str(tmp_path / "staging"),
    )


@pytest.fixture
def staging_dir(test_settings: Settings) -> Path:
    return Path(test_settings.upload_temp_dir)


@pytest.fixture
def assets_dir(test_settings: Settings) -> Path:
    return Path(test_settings.assets_root)


def list_dir(path: Path) -> list[str]:
    """Entries of a directory, or an empty list if it does not exist."""
    return sorted(os.listdir(path)) if path.exists() else []


# ==============================================================================
# Storage Fixtures
# ==============================================================================


@pytest.fixture
def s3_client() -> Any:
    """Real boto3 client; no request reaches the network unless stubbed."""
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


@pytest.fixture
def s3_stubber(s3_client: Any) -> Generator[Stubber, None, None]:
    with Stubber(s3_client) as stubber:
        yield stubber


@pytest.fixture
def storage_service(s3_client: Any) -> StorageService:
    return StorageService(bucket_name=TEST_BUCKET, client=s3_client)


@pytest.fixture
def presign_service(storage_service: StorageService, test_settings: Settings) -> PresignService:
    return PresignService(storage_service, expiration=test_settings.presigned_url_expiration_seconds)


# ==============================================================================
# Record Store Fixtures
# ==============================================================================


@pytest.fixture
def owner_id() -> str:
    return str(uuid4())


@pytest.fixture
def other_user_id() -> str:
    return str(uuid4())


@pytest.fixture
def sample_video(owner_id: str) -> Video:
    created = datetime.now(UTC) - timedelta(days=1)
    return Video(
        user_id=owner_id,
        title="Boots on the ground",
        description="First light on the ridge",
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def video_store(sample_video: Video) -> AsyncMock:
    """Record store whose fetch returns sample_video."""
    store = AsyncMock(spec=VideoStore)
    store.fetch.return_value = sample_video
    store.update.return_value = None
    store.list_by_owner.return_value = [sample_video]
    store.create.side_effect = lambda video: video
    return store


# ==============================================================================
# Media Tool Fakes
# ==============================================================================


class FakeProber:
    """MediaProber returning a fixed geometry, or raising a given error."""

    def __init__(self, geometry: VideoGeometry | None = None, error: Exception | None = None):
        self.geometry = geometry or VideoGeometry(width=1920, height=1080)
        self.error = error
        self.probed: list[str] = []
        self.seen_bytes: list[bytes] = []

    async def probe(self, path: str) -> VideoGeometry:
        self.probed.append(path)
        with open(path, "rb") as f:
            self.seen_bytes.append(f.read())
        if self.error is not None:
            raise self.error
        return self.geometry


class FakeRemuxer:
    """ContainerRemuxer that copies the input to ``<path>.processing``."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.outputs: list[str] = []

    async def remux(self, path: str) -> str:
        if self.error is not None:
            raise self.error
        output_path = f"{path}.processing"
        shutil.copyfile(path, output_path)
        self.outputs.append(output_path)
        return output_path


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def fake_remuxer() -> FakeRemuxer:
    return FakeRemuxer()


@pytest.fixture
def failing_remuxer() -> FakeRemuxer:
    return FakeRemuxer(error=RemuxFailedError("ffmpeg exited with status 1", stderr="moov atom not found"))


# ==============================================================================
# Upload Fixtures
# ==============================================================================


def _image_bytes(fmt: str) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (64, 36), color=(200, 40, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture
def gif_bytes() -> bytes:
    return _image_bytes("GIF")


@pytest.fixture
def mp4_bytes() -> bytes:
    # Content is opaque to the fakes; only the declared type matters
    return b"\x00\x00\x00\x18ftypmp42" + os.urandom(4096)


def make_upload(data: bytes, content_type: str | None, filename: str = "upload.bin") -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(file=BytesIO(data), filename=filename, headers=headers)


def make_loader(upload: UploadFile) -> AsyncMock:
    """Form loader returning ``upload``; assert on ``await_count`` to check body reads."""
    return AsyncMock(return_value=upload)


@pytest.fixture
def upload_service(
    test_settings: Settings,
    video_store: AsyncMock,
    storage_service: StorageService,
    presign_service: PresignService,
    fake_prober: FakeProber,
    fake_remuxer: FakeRemuxer,
) -> VideoUploadService:
    return VideoUploadService(
        settings=test_settings,
        store=video_store,
        assets=LocalAssetStore.from_settings(test_settings),
        storage=storage_service,
        presigner=presign_service,
        prober=fake_prober,
        remuxer=fake_remuxer,
    )


# ==============================================================================
# FastAPI Fixtures
# ==============================================================================


@pytest.fixture
def auth_headers(owner_id: str, test_settings: Settings) -> dict[str, str]:
    token = create_access_token(owner_id, test_settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user_id: str, test_settings: Settings) -> dict[str, str]:
    token = create_access_token(other_user_id, test_settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app(
    test_settings: Settings,
    video_store: AsyncMock,
    storage_service: StorageService,
    presign_service: PresignService,
    upload_service: VideoUploadService,
):
    application = create_app(test_settings)
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_video_store] = lambda: video_store
    application.dependency_overrides[get_storage_service] = lambda: storage_service
    application.dependency_overrides[get_presign_service] = lambda: presign_service
    application.dependency_overrides[get_upload_service] = lambda: upload_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    # Not entered as a context manager, so the lifespan (MongoDB) never runs
    return TestClient(app)
