"""
Read-time presigning of stored video references.

Video records keep an opaque ``"<bucket>,<key>"`` reference. Every time a
record leaves the service, its reference is swapped for a fresh presigned
GET URL on a copy of the record. Nothing here writes to the record store.
"""

import logging

from tubely.models.video import ObjectReference, Video
from tubely.services.storage_service import StorageService


logger = logging.getLogger(__name__)


class PresignService:
    """
    Turns stored composite references into time-limited URLs.

    Attributes:
        storage: Object store used for signing
        expiration: URL lifetime in seconds
    """

    def __init__(self, storage: StorageService, expiration: int) -> None:
        self.storage = storage
        self.expiration = expiration

    async def presign_reference(self, reference: ObjectReference) -> str:
        """
        Sign a GET URL for a decoded reference.

        Raises:
            StorageServiceError: If signing fails
        """
        return await self.storage.generate_presigned_download_url(
            reference.key,
            expiration=self.expiration,
            bucket_name=reference.bucket,
        )

    async def sign_video(self, video: Video) -> Video:
        """
        Return a copy of ``video`` whose ``video_url`` is a presigned URL.

        A record with no uploaded video is returned unchanged. The original
        instance is never modified.

        Raises:
            ReferenceFormatError: If the stored reference is corrupt
            StorageServiceError: If signing fails
        """
        reference = ObjectReference.decode(video.video_url)
        if reference is None:
            return video

        url = await self.presign_reference(reference)
        return video.model_copy(update={"video_url": url})

    async def sign_videos(self, videos: list[Video]) -> list[Video]:
        return [await self.sign_video(video) for video in videos]
