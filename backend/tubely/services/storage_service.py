"""
S3-compatible storage service for Tubely.

Wraps the boto3 calls the upload pipeline needs: putting a processed video
from a local file and generating presigned GET URLs for stored videos. Works
against MinIO in development (path-style addressing through a custom
endpoint) and AWS S3 in production.

boto3 is synchronous; every call runs in a worker thread via ``async_wrap`` so
the event loop is never blocked on network IO.
"""

import asyncio
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from tubely.config import Settings


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PRESIGNED_URL_EXPIRATION = 600


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator that runs a blocking boto3 call in the default thread pool.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original via asyncio.to_thread
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


class StorageServiceError(Exception):
    """Base exception for storage service errors."""


class StorageConnectionError(StorageServiceError):
    """Raised when the S3 client cannot be created."""


class StorageCredentialsError(StorageServiceError):
    """Raised when storage credentials are missing or invalid."""


class StorageOperationError(StorageServiceError):
    """Raised when a put or presign operation fails."""


class StorageService:
    """
    Object store collaborator for processed videos.

    Attributes:
        bucket_name: Default bucket for puts and presigns
        endpoint_url: S3-compatible endpoint (MinIO) or None for AWS S3
        region_name: AWS region used for signing

    Example:
        >>> service = StorageService.from_settings(get_settings())
        >>> await service.put_file("landscape/abc.mp4", "/tmp/abc.mp4", "video/mp4")
        >>> url = await service.generate_presigned_download_url("landscape/abc.mp4", 600)
    """

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region_name: str = "us-east-1",
        client: Any | None = None,
    ) -> None:
        """
        Initialize the storage service.

        Args:
            bucket_name: Default bucket name for all operations
            endpoint_url: S3-compatible endpoint URL (None for AWS S3 default)
            access_key: Access key ID; falls back to the boto3 credential chain
            secret_key: Secret access key
            region_name: AWS region (default: us-east-1)
            client: Pre-built boto3 S3 client, used instead of creating one

        Raises:
            StorageCredentialsError: If credentials cannot be resolved
            StorageConnectionError: If the client cannot be created
        """
        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url
        self.region_name = region_name

        if client is not None:
            self._client = client
            return

        client_kwargs: dict[str, Any] = {
            "service_name": "s3",
            "region_name": region_name,
            "config": Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
        if access_key and secret_key:
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key

        try:
            self._client = boto3.client(**client_kwargs)
        except NoCredentialsError as e:
            logger.error("S3 credentials not found")
            raise StorageCredentialsError("S3 credentials not found") from e
        except BotoCoreError as e:
            logger.error("Failed to initialize S3 client: %s", e)
            raise StorageConnectionError(f"Failed to initialize S3 client: {e}") from e

        logger.info(
            "StorageService initialized",
            extra={"bucket": bucket_name, "endpoint": endpoint_url or "aws"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageService":
        """Build a service from application settings."""
        return cls(
            bucket_name=settings.s3_bucket_name,
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key_id,
            secret_key=settings.s3_secret_access_key,
            region_name=settings.s3_region,
        )

    async def put_file(
        self,
        object_key: str,
        file_path: str,
        content_type: str,
        bucket_name: str | None = None,
    ) -> None:
        """
        Upload a local file's bytes as a single object.

        The file is opened inside the worker thread and closed before the
        call returns.

        Args:
            object_key: Destination key
            file_path: Local path of the file to upload
            content_type: Content-Type stored with the object
            bucket_name: Optional bucket override (defaults to service bucket)

        Raises:
            StorageCredentialsError: If credentials are rejected or missing
            StorageOperationError: If the put fails or the file cannot be read
        """
        target_bucket = bucket_name or self.bucket_name

        @async_wrap
        def _put() -> dict[str, Any]:
            with open(file_path, "rb") as body:
                return self._client.put_object(
                    Bucket=target_bucket,
                    Key=object_key,
                    Body=body,
                    ContentType=content_type,
                )

        try:
            await _put()
        except NoCredentialsError as e:
            logger.error("S3 credentials not found during put")
            raise StorageCredentialsError("S3 credentials not found") from e
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message", str(e))
            logger.error("Failed to put object %s: %s", object_key, message)
            raise StorageOperationError(f"Failed to put object: {message}") from e
        except BotoCoreError as e:
            logger.error("Storage error putting object %s: %s", object_key, e)
            raise StorageOperationError(f"Storage error during put: {e}") from e
        except OSError as e:
            logger.error("Cannot read %s for upload: %s", file_path, e)
            raise StorageOperationError(f"Cannot read upload source: {e}") from e

        logger.info(
            "Stored object",
            extra={"bucket": target_bucket, "object_key": object_key, "content_type": content_type},
        )

    async def generate_presigned_download_url(
        self,
        object_key: str,
        expiration: int = DEFAULT_PRESIGNED_URL_EXPIRATION,
        bucket_name: str | None = None,
    ) -> str:
        """
        Generate a time-limited GET URL for an object.

        Signing is a local computation; no request is made to the store.

        Args:
            object_key: Key of the stored object
            expiration: URL lifetime in seconds
            bucket_name: Optional bucket override (defaults to service bucket)

        Returns:
            Presigned URL string

        Raises:
            StorageCredentialsError: If no credentials are available for signing
            StorageOperationError: If signing fails
        """
        target_bucket = bucket_name or self.bucket_name

        @async_wrap
        def _generate() -> str:
            return self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": target_bucket, "Key": object_key},
                ExpiresIn=expiration,
                HttpMethod="GET",
            )

        try:
            url = await _generate()
        except NoCredentialsError as e:
            logger.error("S3 credentials not found during presign")
            raise StorageCredentialsError("S3 credentials not found") from e
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message", str(e))
            logger.error("Failed to presign %s: %s", object_key, message)
            raise StorageOperationError(f"Failed to generate presigned URL: {message}") from e
        except BotoCoreError as e:
            logger.error("Storage error presigning %s: %s", object_key, e)
            raise StorageOperationError(f"Storage error during presign: {e}") from e

        logger.debug(
            "Generated presigned download URL",
            extra={"bucket": target_bucket, "object_key": object_key, "expiration": expiration},
        )
        return url


__all__ = [
    "DEFAULT_PRESIGNED_URL_EXPIRATION",
    "StorageConnectionError",
    "StorageCredentialsError",
    "StorageOperationError",
    "StorageService",
    "StorageServiceError",
    "async_wrap",
]
