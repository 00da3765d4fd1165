"""
Utility helpers for the Tubely backend.

asset_keys:
    Random, delimiter-free object keys with extensions derived from MIME types.

aspect:
    Tolerance-banded aspect ratio classification into orientation buckets.

logger:
    JSON/text log formatting, application-wide setup and context adapters.
"""

from tubely.utils.asset_keys import (
    MEDIA_TYPE_EXTENSIONS,
    UnsupportedMediaTypeError,
    generate_asset_key,
)
from tubely.utils.aspect import AspectRatioError, classify_aspect_ratio
from tubely.utils.logger import add_log_context, setup_logging


__all__ = [
    "MEDIA_TYPE_EXTENSIONS",
    "AspectRatioError",
    "UnsupportedMediaTypeError",
    "add_log_context",
    "classify_aspect_ratio",
    "generate_asset_key",
    "setup_logging",
]
