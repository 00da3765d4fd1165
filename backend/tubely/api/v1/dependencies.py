"""
Dependency providers for v1 routers.

Each provider can be replaced in tests through ``app.dependency_overrides``.
The boto3-backed StorageService is built once per process; the rest are
cheap wrappers constructed per request.
"""

from functools import lru_cache
from uuid import UUID

from fastapi import Depends

from tubely.api.v1.errors import invalid_input
from tubely.config import Settings, get_settings
from tubely.core.database import get_db_client
from tubely.services.asset_store import LocalAssetStore
from tubely.services.media_service import FFmpegRemuxer, FFprobeProber
from tubely.services.presign_service import PresignService
from tubely.services.storage_service import StorageService
from tubely.services.upload_service import VideoUploadService
from tubely.services.video_store import VideoStore


@lru_cache
def get_storage_service() -> StorageService:
    return StorageService.from_settings(get_settings())


def get_video_store() -> VideoStore:
    return VideoStore(get_db_client().get_videos_collection())


def get_presign_service(
    storage: StorageService = Depends(get_storage_service),
    settings: Settings = Depends(get_settings),
) -> PresignService:
    return PresignService(storage, expiration=settings.presigned_url_expiration_seconds)


def get_upload_service(
    settings: Settings = Depends(get_settings),
    store: VideoStore = Depends(get_video_store),
    storage: StorageService = Depends(get_storage_service),
    presigner: PresignService = Depends(get_presign_service),
) -> VideoUploadService:
    """
    Assemble the upload orchestrator from its collaborators.

    Returns:
        VideoUploadService wired to MongoDB, S3, the local assets root and
        the configured ffprobe/ffmpeg binaries.
    """
    return VideoUploadService(
        settings=settings,
        store=store,
        assets=LocalAssetStore.from_settings(settings),
        storage=storage,
        presigner=presigner,
        prober=FFprobeProber(settings.ffprobe_path),
        remuxer=FFmpegRemuxer(settings.ffmpeg_path),
    )


def parse_video_id(video_id: str) -> str:
    """
    Validate a ``{video_id}`` path parameter and return its canonical form.

    Raises:
        HTTPException: 400 if the value is not a UUID
    """
    try:
        return str(UUID(video_id))
    except ValueError:
        raise invalid_input("Invalid ID") from None
