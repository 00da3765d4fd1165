"""
Tubely Upload Service Module

Orchestrates the two upload paths for an existing video record:

Thumbnail (small, served publicly):
    parse form (10 MiB cap) -> validate image type -> fetch record and check
    owner -> write under the assets root -> set ``thumbnail_url``

Video (large, served through presigned links):
    fetch record and check owner -> parse form (10 GiB cap) -> require
    video/mp4 -> stage to a private temp file -> probe geometry -> classify
    orientation -> remux for fast start -> put to S3 under
    ``<orientation>/<key>.mp4`` -> persist ``"<bucket>,<key>"`` -> respond
    with a presigned copy

The video record is never read from the request body before ownership is
confirmed, and every local file created along the way is removed before the
call returns, whatever the outcome.

Once the object store has accepted a video, a failing record update is not
rolled back; the object is left orphaned.
"""

import logging
from collections.abc import Awaitable, Callable

import aiofiles.os
import aiofiles.tempfile
from starlette.datastructures import UploadFile

from tubely.config import Settings
from tubely.models.video import ObjectReference, ReferenceFormatError, Video
from tubely.services.asset_store import AssetStoreError, LocalAssetStore
from tubely.services.media_service import (
    ContainerRemuxer,
    MediaProber,
    ProbeError,
    RemuxError,
)
from tubely.services.presign_service import PresignService
from tubely.services.storage_service import StorageService, StorageServiceError
from tubely.services.video_store import RecordStoreError, VideoStore
from tubely.utils.aspect import AspectRatioError, classify_aspect_ratio
from tubely.utils.asset_keys import generate_asset_key
from tubely.utils.logger import add_log_context


logger = logging.getLogger(__name__)

ALLOWED_THUMBNAIL_TYPES = frozenset({"image/jpeg", "image/png"})
VIDEO_MEDIA_TYPE = "video/mp4"

STAGING_PREFIX = "tubely-upload-"
STAGING_SUFFIX = ".mp4"
COPY_CHUNK_SIZE = 1024 * 1024

# Loads and returns the uploaded file part; raises InvalidUploadError when
# the body is oversized, malformed or lacks the expected field.
FormLoader = Callable[[], Awaitable[UploadFile]]


# =============================================================================
# Exceptions
# =============================================================================


class UploadServiceError(Exception):
    """Base exception for upload service errors."""


class InvalidUploadError(UploadServiceError):
    """The request is malformed; nothing was written."""


class VideoOwnershipError(UploadServiceError):
    """The authenticated user does not own the target video."""

    def __init__(self, video_id: str, user_id: str) -> None:
        super().__init__("Not authorized to update this video")
        self.video_id = video_id
        self.user_id = user_id


class UploadProcessingError(UploadServiceError):
    """
    A server-side stage of the pipeline failed.

    Attributes:
        stage: One of ``store``, ``stage``, ``probe``, ``remux``, ``upload``,
            ``persist``, ``presign`` or ``write``
    """

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


# =============================================================================
# Helpers
# =============================================================================


def parse_media_type(content_type: str | None) -> str:
    """
    Strip parameters from a Content-Type value and normalise its case.

    ``"video/MP4; codecs=avc1"`` becomes ``"video/mp4"``.

    Raises:
        InvalidUploadError: If the value is missing or not ``type/subtype``
    """
    if not content_type:
        raise InvalidUploadError("Missing Content-Type for file")

    media_type = content_type.split(";", 1)[0].strip().lower()
    main, _, sub = media_type.partition("/")
    if not main or not sub or "/" in sub or " " in media_type:
        raise InvalidUploadError(f"Invalid Content-Type: {content_type!r}")
    return media_type


async def _remove_file(path: str) -> None:
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


# =============================================================================
# Service
# =============================================================================


class VideoUploadService:
    """
    Upload orchestrator for thumbnails and videos.

    Attributes:
        settings: Immutable application settings
        store: Video record store
        assets: Local thumbnail store
        storage: S3 object store
        presigner: Read-time presign service
        prober: Media geometry prober
        remuxer: Fast-start container remuxer
    """

    def __init__(
        self,
        settings: Settings,
        store: VideoStore,
        assets: LocalAssetStore,
        storage: StorageService,
        presigner: PresignService,
        prober: MediaProber,
        remuxer: ContainerRemuxer,
    ) -> None:
        self.settings = settings
        self.store = store
        self.assets = assets
        self.storage = storage
        self.presigner = presigner
        self.prober = prober
        self.remuxer = remuxer

    async def _fetch_owned(self, video_id: str, user_id: str) -> Video:
        """
        Load a record and confirm it belongs to ``user_id``.

        Raises:
            VideoNotFoundError: If the record does not exist
            VideoOwnershipError: If another user owns it
            UploadProcessingError: If the store query fails (stage ``store``)
        """
        try:
            video = await self.store.fetch(video_id)
        except RecordStoreError as e:
            raise UploadProcessingError("store", "Couldn't find video") from e

        if video.user_id != user_id:
            raise VideoOwnershipError(video_id, user_id)
        return video

    async def _sign_for_response(self, video: Video) -> Video:
        try:
            return await self.presigner.sign_video(video)
        except (ReferenceFormatError, StorageServiceError) as e:
            raise UploadProcessingError("presign", "Couldn't generate presigned URL") from e

    # -------------------------------------------------------------------------
    # Thumbnail
    # -------------------------------------------------------------------------

    async def upload_thumbnail(self, video_id: str, user_id: str, load_form: FormLoader) -> Video:
        """
        Store a thumbnail image and point the record at its public URL.

        Args:
            video_id: Target record id
            user_id: Authenticated user id
            load_form: Returns the ``thumbnail`` part of a 10 MiB-capped form

        Returns:
            Updated record, with any stored video reference presigned

        Raises:
            InvalidUploadError: Bad form or unsupported image type
            VideoNotFoundError: No such record
            VideoOwnershipError: Caller does not own the record
            UploadProcessingError: Write, persist or presign failed
        """
        ctx_logger = add_log_context(logger, video_id=video_id, user_id=user_id)
        ctx_logger.info("Uploading thumbnail")

        upload = await load_form()
        media_type = parse_media_type(upload.content_type)
        if media_type not in ALLOWED_THUMBNAIL_TYPES:
            raise InvalidUploadError("Invalid file type for thumbnail")

        video = await self._fetch_owned(video_id, user_id)

        data = await upload.read()
        key = generate_asset_key(media_type)
        try:
            await self.assets.write(key, data)
        except AssetStoreError as e:
            raise UploadProcessingError("write", "Couldn't save thumbnail") from e

        video.thumbnail_url = self.assets.public_url(key)
        video.touch()
        try:
            await self.store.update(video)
        except RecordStoreError as e:
            raise UploadProcessingError("persist", "Couldn't update video") from e

        ctx_logger.info(
            "Thumbnail uploaded", extra={"asset_key": key, "bytes": len(data)}
        )
        return await self._sign_for_response(video)

    # -------------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------------

    async def upload_video(self, video_id: str, user_id: str, load_form: FormLoader) -> Video:
        """
        Process an mp4 upload and point the record at the stored object.

        Ownership is checked before ``load_form`` is awaited, so the body of
        an unauthorized request is never parsed or staged.

        Args:
            video_id: Target record id
            user_id: Authenticated user id
            load_form: Returns the ``video`` part of a 10 GiB-capped form

        Returns:
            Updated record whose ``video_url`` is a fresh presigned URL; the
            stored record keeps the ``bucket,key`` reference

        Raises:
            InvalidUploadError: Bad form or not video/mp4
            VideoNotFoundError: No such record
            VideoOwnershipError: Caller does not own the record
            UploadProcessingError: A stage failed; ``stage`` names which
        """
        ctx_logger = add_log_context(logger, video_id=video_id, user_id=user_id)

        video = await self._fetch_owned(video_id, user_id)
        ctx_logger.info("Uploading video")

        upload = await load_form()
        media_type = parse_media_type(upload.content_type)
        if media_type != VIDEO_MEDIA_TYPE:
            raise InvalidUploadError("Invalid file type, only MP4 is allowed")

        staging_dir = self.settings.upload_temp_dir
        if staging_dir:
            try:
                await aiofiles.os.makedirs(staging_dir, exist_ok=True)
            except OSError as e:
                raise UploadProcessingError("stage", "Couldn't prepare staging directory") from e

        try:
            async with aiofiles.tempfile.NamedTemporaryFile(
                "w+b", prefix=STAGING_PREFIX, suffix=STAGING_SUFFIX, dir=staging_dir
            ) as staged:
                staged_bytes = 0
                try:
                    while chunk := await upload.read(COPY_CHUNK_SIZE):
                        await staged.write(chunk)
                        staged_bytes += len(chunk)
                    await staged.flush()
                    await staged.seek(0)
                except OSError as e:
                    raise UploadProcessingError("stage", "Couldn't stage upload") from e

                ctx_logger.debug("Staged upload", extra={"bytes": staged_bytes})
                object_key = await self._process_staged(staged.name, ctx_logger)
        except OSError as e:
            # Temp file creation or removal
            raise UploadProcessingError("stage", "Couldn't create temporary file") from e

        previous_reference = video.video_url
        video.video_url = ObjectReference(self.storage.bucket_name, object_key).encode()
        video.touch()
        try:
            await self.store.update(video)
        except RecordStoreError as e:
            ctx_logger.error(
                "Stored object left orphaned after failed update",
                extra={"object_key": object_key},
            )
            raise UploadProcessingError("persist", "Couldn't update video") from e

        if previous_reference:
            ctx_logger.info(
                "Replaced video reference", extra={"previous_reference": previous_reference}
            )
        ctx_logger.info("Video uploaded", extra={"object_key": object_key})
        return await self._sign_for_response(video)

    async def _process_staged(self, staged_path: str, ctx_logger: logging.LoggerAdapter) -> str:
        """
        Probe, classify, remux and upload a staged file.

        Returns:
            The object key the video was stored under
        """
        try:
            geometry = await self.prober.probe(staged_path)
            orientation = classify_aspect_ratio(geometry.width, geometry.height)
        except (ProbeError, AspectRatioError) as e:
            stderr = getattr(e, "stderr", "")
            ctx_logger.error("Probe failed: %s", e, extra={"stderr": stderr})
            raise UploadProcessingError("probe", "Couldn't determine video aspect ratio") from e

        object_key = f"{orientation.value}/{generate_asset_key(VIDEO_MEDIA_TYPE)}"
        ctx_logger.debug(
            "Classified video",
            extra={
                "width": geometry.width,
                "height": geometry.height,
                "orientation": orientation.value,
            },
        )

        try:
            processed_path = await self.remuxer.remux(staged_path)
        except RemuxError as e:
            ctx_logger.error("Remux failed: %s", e, extra={"stderr": e.stderr})
            raise UploadProcessingError("remux", "Couldn't process video") from e

        try:
            await self.storage.put_file(object_key, processed_path, VIDEO_MEDIA_TYPE)
        except StorageServiceError as e:
            raise UploadProcessingError("upload", "Couldn't upload video") from e
        finally:
            await _remove_file(processed_path)

        return object_key


__all__ = [
    "ALLOWED_THUMBNAIL_TYPES",
    "VIDEO_MEDIA_TYPE",
    "FormLoader",
    "InvalidUploadError",
    "UploadProcessingError",
    "UploadServiceError",
    "VideoOwnershipError",
    "VideoUploadService",
    "parse_media_type",
]
