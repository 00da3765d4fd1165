"""
FastAPI Upload Router for Tubely

Endpoints:
- POST /thumbnail/{video_id} - multipart field ``thumbnail`` (image/jpeg or image/png, 10 MiB)
- POST /video/{video_id} - multipart field ``video`` (video/mp4, 10 GiB)

The endpoints take the raw Request instead of File parameters so FastAPI
does not parse the body up front: the video path checks ownership first and
only then reads the form. Body size caps are enforced while the ASGI body
stream is consumed, not after buffering it.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.types import Message, Receive

from tubely.api.v1.dependencies import get_upload_service, parse_video_id
from tubely.api.v1.errors import ERROR_RESPONSES, SERVICE_ERRORS, to_http_exception
from tubely.config import Settings, get_settings
from tubely.core.auth import get_current_user_id
from tubely.models.video import Video
from tubely.services.upload_service import InvalidUploadError, VideoUploadService


logger = logging.getLogger(__name__)

router = APIRouter()

THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"

# Slack for multipart boundaries and part headers on top of the file cap
MULTIPART_OVERHEAD_BYTES = 64 * 1024


# ============================================================================
# Bounded form loading
# ============================================================================


class RequestBodyTooLargeError(Exception):
    """Raised from the receive channel once the body exceeds its cap."""


class LimitedReceive:
    """ASGI receive wrapper that fails once more than ``max_bytes`` arrive."""

    def __init__(self, receive: Receive, max_bytes: int) -> None:
        self._receive = receive
        self.max_bytes = max_bytes
        self.received = 0

    async def __call__(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request":
            self.received += len(message.get("body", b""))
            if self.received > self.max_bytes:
                raise RequestBodyTooLargeError(
                    f"Request body exceeds {self.max_bytes} bytes"
                )
        return message


class MultipartFormLoader:
    """
    Parses a multipart body on demand and returns one file field.

    ``max_bytes`` caps the file part; the body as a whole may exceed it by
    ``MULTIPART_OVERHEAD_BYTES`` of framing.

    Call ``aclose()`` when the request is done to release spooled files.
    """

    def __init__(self, request: Request, field: str, max_bytes: int) -> None:
        self.request = request
        self.field = field
        self.max_bytes = max_bytes
        self._form: FormData | None = None

    async def __call__(self) -> UploadFile:
        body_cap = self.max_bytes + MULTIPART_OVERHEAD_BYTES
        declared = self.request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > body_cap:
            raise InvalidUploadError("Request body too large")

        limited = Request(
            self.request.scope, receive=LimitedReceive(self.request.receive, body_cap)
        )
        try:
            self._form = await limited.form(max_files=1)
        except RequestBodyTooLargeError as e:
            raise InvalidUploadError("Request body too large") from e
        except (MultiPartException, StarletteHTTPException) as e:
            raise InvalidUploadError("Unable to parse multipart form") from e

        upload = self._form.get(self.field)
        if not isinstance(upload, UploadFile):
            raise InvalidUploadError(f"Unable to parse form file '{self.field}'")
        if upload.size is not None and upload.size > self.max_bytes:
            raise InvalidUploadError("File too large")
        return upload

    async def aclose(self) -> None:
        if self._form is not None:
            await self._form.close()
            self._form = None


async def _run_upload(
    operation: Any,
    video_id: str,
    user_id: str,
    loader: MultipartFormLoader,
) -> Video:
    try:
        return await operation(video_id, user_id, loader)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    finally:
        await loader.aclose()


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/thumbnail/{video_id}",
    response_model=Video,
    response_model_by_alias=False,
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    summary="Upload a video thumbnail",
)
async def upload_thumbnail(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    video_id: str = Depends(parse_video_id),
    settings: Settings = Depends(get_settings),
    upload_service: VideoUploadService = Depends(get_upload_service),
) -> Video:
    """
    Store a JPEG or PNG thumbnail for a video the caller owns.

    The image is written under the public assets root and the record's
    ``thumbnail_url`` is set to its public URL.
    """
    loader = MultipartFormLoader(request, THUMBNAIL_FIELD, settings.thumbnail_max_bytes)
    return await _run_upload(upload_service.upload_thumbnail, video_id, user_id, loader)


@router.post(
    "/video/{video_id}",
    response_model=Video,
    response_model_by_alias=False,
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    summary="Upload a video file",
)
async def upload_video(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    video_id: str = Depends(parse_video_id),
    settings: Settings = Depends(get_settings),
    upload_service: VideoUploadService = Depends(get_upload_service),
) -> Video:
    """
    Process and store an MP4 for a video the caller owns.

    The file is probed for its aspect ratio, remuxed for fast start and
    stored in S3 under ``<orientation>/<key>.mp4``. The response carries a
    presigned ``video_url`` valid for ten minutes.
    """
    loader = MultipartFormLoader(request, VIDEO_FIELD, settings.video_max_bytes)
    return await _run_upload(upload_service.upload_video, video_id, user_id, loader)
