"""
MongoDB-backed store for video records.

The upload pipeline only fetches a record and writes back its URL and
timestamp fields. Creating and listing records belongs to the video
management endpoints.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from tubely.models.video import Video


logger = logging.getLogger(__name__)


class VideoStoreError(Exception):
    """Base exception for record store errors."""


class VideoNotFoundError(VideoStoreError):
    """Raised when no record exists for a video id."""

    def __init__(self, video_id: str) -> None:
        super().__init__(f"Video {video_id} not found")
        self.video_id = video_id


class RecordStoreError(VideoStoreError):
    """Raised when MongoDB rejects an operation or returns an unreadable document."""


class VideoStore:
    """
    Record store collaborator over the ``videos`` collection.

    Attributes:
        collection: Motor collection holding video documents
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def fetch(self, video_id: str) -> Video:
        """
        Load one video record.

        Raises:
            VideoNotFoundError: If no document has this id
            RecordStoreError: If the query fails or the document is malformed
        """
        try:
            document = await self.collection.find_one({"_id": video_id})
        except PyMongoError as e:
            logger.error("Failed to fetch video %s: %s", video_id, e)
            raise RecordStoreError(f"Failed to fetch video: {e}") from e

        if document is None:
            raise VideoNotFoundError(video_id)

        return self._to_model(document)

    async def update(self, video: Video) -> None:
        """
        Replace the stored record with ``video``.

        Last writer wins; there is no version check.

        Raises:
            VideoNotFoundError: If the record no longer exists
            RecordStoreError: If the write fails
        """
        try:
            result = await self.collection.replace_one({"_id": video.id}, video.to_document())
        except PyMongoError as e:
            logger.error("Failed to update video %s: %s", video.id, e)
            raise RecordStoreError(f"Failed to update video: {e}") from e

        if result.matched_count == 0:
            raise VideoNotFoundError(video.id)

    async def create(self, video: Video) -> Video:
        """
        Insert a new record.

        Raises:
            RecordStoreError: If the insert fails
        """
        try:
            await self.collection.insert_one(video.to_document())
        except DuplicateKeyError as e:
            raise RecordStoreError(f"Video {video.id} already exists") from e
        except PyMongoError as e:
            logger.error("Failed to create video: %s", e)
            raise RecordStoreError(f"Failed to create video: {e}") from e

        logger.info("Created video", extra={"video_id": video.id, "user_id": video.user_id})
        return video

    async def list_by_owner(self, user_id: str) -> list[Video]:
        """
        List a user's videos, newest first.

        Raises:
            RecordStoreError: If the query fails
        """
        try:
            cursor = self.collection.find({"user_id": user_id}).sort("created_at", -1)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to list videos for %s: %s", user_id, e)
            raise RecordStoreError(f"Failed to list videos: {e}") from e

        return [self._to_model(document) for document in documents]

    @staticmethod
    def _to_model(document: dict) -> Video:
        try:
            return Video.model_validate(document)
        except ValidationError as e:
            raise RecordStoreError(f"Malformed video document {document.get('_id')}: {e}") from e
