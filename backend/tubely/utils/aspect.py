"""Aspect ratio classification for uploaded videos."""

from tubely.models.video import Orientation


PORTRAIT_RATIO = 9 / 16
LANDSCAPE_RATIO = 16 / 9
RATIO_TOLERANCE = 0.05


class AspectRatioError(ValueError):
    """Raised when a width/height pair has no meaningful ratio."""


def classify_aspect_ratio(width: int, height: int) -> Orientation:
    """
    Bucket a frame size into portrait, landscape or other.

    The ratio ``width / height`` is compared against 9:16 and then 16:9 with
    an absolute tolerance of 0.05. Portrait is checked first.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        Orientation bucket

    Raises:
        AspectRatioError: If height is zero or either dimension is negative
    """
    if height == 0:
        raise AspectRatioError("Cannot classify a frame with zero height")
    if width < 0 or height < 0:
        raise AspectRatioError(f"Invalid frame size {width}x{height}")

    ratio = width / height
    if abs(ratio - PORTRAIT_RATIO) <= RATIO_TOLERANCE:
        return Orientation.PORTRAIT
    if abs(ratio - LANDSCAPE_RATIO) <= RATIO_TOLERANCE:
        return Orientation.LANDSCAPE
    return Orientation.OTHER
