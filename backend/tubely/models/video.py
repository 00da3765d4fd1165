"""
Video Pydantic models for Tubely.

This module defines the Video record stored in MongoDB, the request body for
creating a draft video, the orientation buckets used to namespace object keys,
and the composite (bucket, key) reference persisted in ``Video.video_url``.

The stored ``video_url`` is an opaque ``"<bucket>,<key>"`` string. It is
never returned to clients as-is; read paths replace it with a presigned URL
on a copy of the record.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


REFERENCE_DELIMITER = ","


# =============================================================================
# ENUMS
# =============================================================================


class Orientation(str, Enum):
    """
    Coarse aspect-ratio bucket of an uploaded video.

    Used only as the leading path segment of the object key
    (``portrait/<key>.mp4``); it is not stored on the record.
    """

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    OTHER = "other"


# =============================================================================
# COMPOSITE OBJECT REFERENCE
# =============================================================================


class ReferenceFormatError(ValueError):
    """Raised when a stored video reference is not a ``bucket,key`` pair."""


@dataclass(frozen=True)
class ObjectReference:
    """
    Location of a processed video in the object store.

    Attributes:
        bucket: Bucket name
        key: Object key, e.g. ``landscape/<random>.mp4``
    """

    bucket: str
    key: str

    def encode(self) -> str:
        """
        Flatten the reference into its stored ``"<bucket>,<key>"`` form.

        Raises:
            ReferenceFormatError: If either part is empty or contains the delimiter
        """
        for part in (self.bucket, self.key):
            if not part or REFERENCE_DELIMITER in part:
                raise ReferenceFormatError(
                    f"Reference parts must be non-empty and free of '{REFERENCE_DELIMITER}': "
                    f"{self.bucket!r}, {self.key!r}"
                )
        return f"{self.bucket}{REFERENCE_DELIMITER}{self.key}"

    @classmethod
    def decode(cls, value: str | None) -> "ObjectReference | None":
        """
        Parse a stored reference.

        ``None`` means the video was never uploaded and is returned as-is.
        Anything else must split into exactly two non-empty parts.

        Args:
            value: Stored ``video_url`` value

        Returns:
            ObjectReference, or None when nothing has been uploaded

        Raises:
            ReferenceFormatError: If the value is not a ``bucket,key`` pair
        """
        if value is None:
            return None

        parts = value.split(REFERENCE_DELIMITER)
        if len(parts) != 2 or not all(parts):
            raise ReferenceFormatError(f"Corrupt video reference: {value!r}")

        return cls(bucket=parts[0], key=parts[1])


# =============================================================================
# MODELS
# =============================================================================


class Video(BaseModel):
    """
    Video record as stored in the ``videos`` collection.

    Attributes:
        id: UUID string, stored as MongoDB ``_id``
        user_id: Owning user's UUID string; immutable after creation
        title: Display title
        description: Free-form description
        thumbnail_url: Public URL of the thumbnail, or None
        video_url: Stored composite reference (or a presigned URL on response copies)
        created_at: Creation timestamp (UTC)
        updated_at: Last pipeline mutation timestamp (UTC)
    """

    id: str = Field(default_factory=lambda: str(uuid4()), alias="_id")
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    thumbnail_url: str | None = None
    video_url: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "6b1d3f0e-2a7c-4f5e-9c61-0d4a8f3e2b11",
                "user_id": "2f4c9a1b-7e3d-4b8a-a0c2-5d6e7f8a9b0c",
                "title": "Boots on the ground",
                "description": "First light on the ridge",
                "thumbnail_url": "http://localhost:8091/assets/Zk3...Q.png",
                "video_url": "https://tubely-videos.s3.amazonaws.com/landscape/aB9...x.mp4?X-Amz-...",
                "created_at": "2025-01-15T10:30:00Z",
                "updated_at": "2025-01-15T10:45:00Z",
            }
        },
    )

    def to_document(self) -> dict:
        """Serialize for MongoDB, keeping ``_id`` as the primary key."""
        return self.model_dump(by_alias=True)

    def touch(self) -> None:
        """Record a pipeline mutation."""
        self.updated_at = datetime.now(UTC)


class VideoCreate(BaseModel):
    """Request body for creating a draft video record."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v


__all__ = [
    "REFERENCE_DELIMITER",
    "ObjectReference",
    "Orientation",
    "ReferenceFormatError",
    "Video",
    "VideoCreate",
]
