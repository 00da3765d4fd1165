"""
Tubely API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter mounted by the
application under ``/api/v1``.

Router Structure:
    - /upload: Thumbnail and video upload endpoints
    - /videos: Create, list and fetch video records
"""

import logging

from fastapi import APIRouter

from tubely.api.v1.upload import router as upload_router
from tubely.api.v1.videos import router as videos_router


logger = logging.getLogger(__name__)

api_router = APIRouter()

api_router.include_router(upload_router, prefix="/upload", tags=["upload"])
api_router.include_router(videos_router, prefix="/videos", tags=["videos"])


__all__ = ["api_router"]
