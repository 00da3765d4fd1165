"""
Local storage for thumbnail assets.

Thumbnails are small, so they are written straight into the public assets
directory that the application serves at ``/assets``.
"""

import logging
import os

import aiofiles
import aiofiles.os

from tubely.config import Settings


logger = logging.getLogger(__name__)


class AssetStoreError(Exception):
    """Raised when an asset cannot be written."""


class LocalAssetStore:
    """
    Writes assets under ``root`` and builds their public URLs.

    Attributes:
        root: Directory served at ``/assets``
        public_base_url: Externally reachable origin, without trailing slash
    """

    def __init__(self, root: str, public_base_url: str) -> None:
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalAssetStore":
        return cls(root=settings.assets_root, public_base_url=settings.public_base_url)

    def path_for(self, key: str) -> str:
        return os.path.join(self.root, key)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/assets/{key}"

    async def write(self, key: str, data: bytes) -> str:
        """
        Persist ``data`` under ``key``.

        Args:
            key: Asset key, e.g. ``<random>.png``
            data: Full file contents

        Returns:
            Local path of the written file

        Raises:
            AssetStoreError: If the directory or file cannot be written
        """
        path = self.path_for(key)
        try:
            await aiofiles.os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Failed to write asset %s: %s", path, e)
            raise AssetStoreError(f"Failed to write asset: {e}") from e

        logger.info("Wrote asset", extra={"asset_key": key, "bytes": len(data)})
        return path
