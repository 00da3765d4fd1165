"""
Object key generation for uploaded assets.

Keys look like ``<random-id>.<extension>``. The random id is 32 bytes from
the ``secrets`` CSPRNG, URL-safe base64 encoded without padding, so it only
ever contains ``A-Z a-z 0-9 - _`` and can be embedded in a comma-delimited
stored reference and in a URL path without escaping.
"""

import base64
import secrets


RANDOM_ID_BYTES = 32

MEDIA_TYPE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "video/mp4": "mp4",
}


class UnsupportedMediaTypeError(ValueError):
    """Raised when no extension is registered for a media type."""


def extension_for(media_type: str) -> str:
    """
    Look up the file extension for a validated media type.

    Raises:
        UnsupportedMediaTypeError: If the media type is not in MEDIA_TYPE_EXTENSIONS
    """
    try:
        return MEDIA_TYPE_EXTENSIONS[media_type]
    except KeyError:
        raise UnsupportedMediaTypeError(f"No extension registered for '{media_type}'") from None


def generate_asset_key(media_type: str) -> str:
    """
    Generate a fresh object key for an asset of the given media type.

    Args:
        media_type: Validated MIME type, e.g. ``image/png``

    Returns:
        Key such as ``q2B...3w.png``

    Raises:
        UnsupportedMediaTypeError: If the media type has no registered extension
    """
    extension = extension_for(media_type)
    random_id = base64.urlsafe_b64encode(secrets.token_bytes(RANDOM_ID_BYTES)).rstrip(b"=")
    return f"{random_id.decode('ascii')}.{extension}"
