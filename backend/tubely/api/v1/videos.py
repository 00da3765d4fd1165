"""
FastAPI Video Router for Tubely

Endpoints:
- POST / - create a draft video record owned by the caller
- GET / - list the caller's videos
- GET /{video_id} - fetch one of the caller's videos

Every record leaving these endpoints goes through PresignService, so clients
only ever see a presigned ``video_url``; stored records are not modified.
"""

import logging

from fastapi import APIRouter, Depends, status

from tubely.api.v1.dependencies import get_presign_service, get_video_store, parse_video_id
from tubely.api.v1.errors import ERROR_RESPONSES, SERVICE_ERRORS, to_http_exception
from tubely.core.auth import get_current_user_id
from tubely.models.video import Video, VideoCreate
from tubely.services.presign_service import PresignService
from tubely.services.upload_service import VideoOwnershipError
from tubely.services.video_store import VideoStore


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=Video,
    response_model_by_alias=False,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Create a video record",
)
async def create_video(
    payload: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
) -> Video:
    """Create a draft record with no thumbnail or video attached."""
    video = Video(user_id=user_id, title=payload.title, description=payload.description)
    try:
        return await store.create(video)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.get(
    "",
    response_model=list[Video],
    response_model_by_alias=False,
    responses=ERROR_RESPONSES,
    summary="List the caller's videos",
)
async def list_videos(
    user_id: str = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
    presigner: PresignService = Depends(get_presign_service),
) -> list[Video]:
    try:
        videos = await store.list_by_owner(user_id)
        return await presigner.sign_videos(videos)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.get(
    "/{video_id}",
    response_model=Video,
    response_model_by_alias=False,
    responses=ERROR_RESPONSES,
    summary="Get a video",
)
async def get_video(
    user_id: str = Depends(get_current_user_id),
    video_id: str = Depends(parse_video_id),
    store: VideoStore = Depends(get_video_store),
    presigner: PresignService = Depends(get_presign_service),
) -> Video:
    """Fetch one video; only its owner may read it."""
    try:
        video = await store.fetch(video_id)
        if video.user_id != user_id:
            raise VideoOwnershipError(video_id, user_id)
        return await presigner.sign_video(video)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
