"""
Shared error plumbing for v1 routers.

Service layers raise their own exception types; routers convert them to
HTTPException with a structured ``{"error": code, "message": text}`` detail
through ``to_http_exception`` so every endpoint reports failures the same way.
"""

import logging

from fastapi import HTTPException, status
from pydantic import BaseModel, Field

from tubely.models.video import ReferenceFormatError
from tubely.services.storage_service import StorageServiceError
from tubely.services.upload_service import (
    InvalidUploadError,
    UploadProcessingError,
    VideoOwnershipError,
)
from tubely.services.video_store import RecordStoreError, VideoNotFoundError


logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    """Body of ``detail`` in every error response."""

    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable description")
    stage: str | None = Field(default=None, description="Failed pipeline stage, for 500s")


class ErrorResponse(BaseModel):
    detail: ErrorDetail


ERROR_RESPONSES: dict[int | str, dict] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid input"},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Missing or invalid token"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Not the video owner"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Video not found"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Server error"},
}


def _http_error(status_code: int, error: str, message: str, stage: str | None = None) -> HTTPException:
    detail = ErrorDetail(error=error, message=message, stage=stage)
    return HTTPException(status_code=status_code, detail=detail.model_dump(exclude_none=True))


def invalid_input(message: str) -> HTTPException:
    return _http_error(status.HTTP_400_BAD_REQUEST, "invalid_input", message)


def to_http_exception(exc: Exception) -> HTTPException:
    """
    Map a service exception to the HTTPException the client sees.

    Server-side failures are logged here with their full cause chain,
    including captured ffprobe/ffmpeg stderr carried on the cause.

    Args:
        exc: Exception raised by a service

    Returns:
        HTTPException ready to raise
    """
    if isinstance(exc, InvalidUploadError):
        return invalid_input(str(exc))

    if isinstance(exc, VideoOwnershipError):
        return _http_error(status.HTTP_403_FORBIDDEN, "unauthorized", str(exc))

    if isinstance(exc, VideoNotFoundError):
        return _http_error(status.HTTP_404_NOT_FOUND, "not_found", "Video not found")

    if isinstance(exc, UploadProcessingError):
        cause = exc.__cause__
        logger.error(
            "Upload failed at stage %s: %s",
            exc.stage,
            exc,
            exc_info=exc,
            extra={"stage": exc.stage, "stderr": getattr(cause, "stderr", None)},
        )
        return _http_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, f"{exc.stage}_failed", str(exc), stage=exc.stage
        )

    if isinstance(exc, RecordStoreError):
        logger.error("Record store failure: %s", exc, exc_info=exc)
        return _http_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "store_failed", "Couldn't access video records",
            stage="store",
        )

    if isinstance(exc, ReferenceFormatError | StorageServiceError):
        logger.error("Presign failure: %s", exc, exc_info=exc)
        return _http_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "presign_failed",
            "Couldn't generate presigned URL", stage="presign",
        )

    logger.error("Unhandled service error: %s", exc, exc_info=exc)
    return _http_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error")


# Exceptions that to_http_exception knows how to map
SERVICE_ERRORS = (
    InvalidUploadError,
    VideoOwnershipError,
    VideoNotFoundError,
    UploadProcessingError,
    RecordStoreError,
    ReferenceFormatError,
    StorageServiceError,
)
