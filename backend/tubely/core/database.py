"""
Tubely MongoDB Database Client Module

Async MongoDB connection management using Motor:
- Connection pooling sized from settings
- Connect with retry and exponential backoff, verified by ``ping``
- Accessor for the ``videos`` collection and its indexes
- init/close/get helpers wired into the FastAPI lifespan
"""

import asyncio
import logging

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from tubely.config import Settings


logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"

CONNECT_ATTEMPTS = 3
SERVER_SELECTION_TIMEOUT_MS = 5000


class DatabaseClient:
    """
    Async MongoDB client wrapper with connection pooling and lifecycle management.

    Example usage:
        ```python
        db_client = DatabaseClient(get_settings())
        await db_client.connect()
        videos = db_client.get_videos_collection()
        await db_client.close()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self._mongodb_uri = settings.mongodb_uri
        self._db_name = settings.mongodb_db_name
        self._min_pool_size = settings.mongodb_min_pool_size
        self._max_pool_size = settings.mongodb_max_pool_size
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

    async def connect(self) -> bool:
        """
        Establish the MongoDB connection, retrying with exponential backoff.

        Returns:
            bool: True once a ping succeeds, False after all attempts fail.
        """
        retry_delay = 1.0

        for attempt in range(1, CONNECT_ATTEMPTS + 1):
            try:
                logger.info(
                    "Connecting to MongoDB (attempt %d/%d)",
                    attempt,
                    CONNECT_ATTEMPTS,
                    extra={"database": self._db_name},
                )
                self._client = AsyncIOMotorClient(
                    self._mongodb_uri,
                    minPoolSize=self._min_pool_size,
                    maxPoolSize=self._max_pool_size,
                    serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
                    uuidRepresentation="standard",
                )
                self._database = self._client[self._db_name]
                await self._client.admin.command("ping")

                logger.info(
                    "Connected to MongoDB",
                    extra={
                        "database": self._db_name,
                        "pool": f"{self._min_pool_size}-{self._max_pool_size}",
                    },
                )
                return True

            except (ServerSelectionTimeoutError, ConnectionFailure):
                logger.exception(
                    "MongoDB connection failed (attempt %d/%d)", attempt, CONNECT_ATTEMPTS
                )
                if self._client is not None:
                    self._client.close()
                self._client = None
                self._database = None
                if attempt < CONNECT_ATTEMPTS:
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2

        logger.error("Failed to connect to MongoDB after %d attempts", CONNECT_ATTEMPTS)
        return False

    async def close(self) -> None:
        """Close the Motor client. Safe to call when not connected."""
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._database = None
        logger.info("MongoDB connection closed", extra={"database": self._db_name})

    async def ping(self) -> bool:
        """Health check using the admin ``ping`` command."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except PyMongoError:
            logger.exception("MongoDB ping failed")
            return False
        return True

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        if self._database is None:
            raise RuntimeError("MongoDB database not available. Call connect() first.")
        return self._database

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Get the ``videos`` collection.

        Documents are keyed by the video's UUID string in ``_id`` and carry
        the owner, titles, thumbnail URL, stored video reference and
        timestamps.

        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        return self.get_database()[VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Create the indexes used by per-owner listings."""
        videos = self.get_videos_collection()
        await videos.create_index("user_id")
        await videos.create_index([("user_id", 1), ("created_at", -1)])
        logger.info("Created indexes", extra={"collection": VIDEOS_COLLECTION})


class _DatabaseClientContainer:
    """Holds the process-wide database client."""

    client: DatabaseClient | None = None


_container = _DatabaseClientContainer()


async def init_db(settings: Settings) -> DatabaseClient:
    """
    Initialize the global database client and create indexes.

    Called from the FastAPI lifespan on startup.

    Raises:
        RuntimeError: If the connection cannot be established.
    """
    if _container.client is not None:
        return _container.client

    client = DatabaseClient(settings)
    if not await client.connect():
        raise RuntimeError(
            "Failed to establish MongoDB connection. "
            "Check mongodb_uri configuration and server availability."
        )

    await client.create_indexes()
    _container.client = client
    return client


async def close_db() -> None:
    """Close the global database client on shutdown."""
    if _container.client is not None:
        await _container.client.close()
        _container.client = None


def get_db_client() -> DatabaseClient:
    """
    Get the global database client.

    Raises:
        RuntimeError: If init_db() has not run.
    """
    if _container.client is None:
        raise RuntimeError("Database client not initialized. Call init_db() during startup.")
    return _container.client
