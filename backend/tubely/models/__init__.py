"""
Pydantic data models for Tubely.
"""

from tubely.models.video import (
    REFERENCE_DELIMITER,
    ObjectReference,
    Orientation,
    ReferenceFormatError,
    Video,
    VideoCreate,
)


__all__ = [
    "REFERENCE_DELIMITER",
    "ObjectReference",
    "Orientation",
    "ReferenceFormatError",
    "Video",
    "VideoCreate",
]
