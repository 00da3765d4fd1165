"""
Media inspection and container remuxing for uploaded videos.

Two capabilities sit behind small protocols so the upload orchestrator does
not care how they are implemented:

- MediaProber: ``probe(path) -> VideoGeometry`` for the first video stream
- ContainerRemuxer: ``remux(path) -> output path`` rewriting an mp4 so its
  moov atom precedes the media data ("fast start"), copying streams as-is

The default implementations shell out to ffprobe and ffmpeg with
``asyncio.create_subprocess_exec``. If the awaiting task is cancelled the
child process is killed and reaped before the cancellation propagates.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Protocol


logger = logging.getLogger(__name__)

PROCESSING_SUFFIX = ".processing"

# Cap on stderr carried inside exceptions and log records
MAX_DIAGNOSTIC_CHARS = 4000


# =============================================================================
# Exceptions
# =============================================================================


class MediaServiceError(Exception):
    """Base exception for media tooling errors."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr[-MAX_DIAGNOSTIC_CHARS:]


class ProbeError(MediaServiceError):
    """Base exception for probing failures."""


class ProbeInvocationError(ProbeError):
    """ffprobe could not be started or exited with a non-zero status."""


class ProbeOutputError(ProbeError):
    """ffprobe output was not the expected JSON document."""


class NoVideoStreamError(ProbeError):
    """The file contains no video stream."""


class RemuxError(MediaServiceError):
    """Base exception for remux failures."""


class RemuxInvocationError(RemuxError):
    """ffmpeg could not be started."""


class RemuxFailedError(RemuxError):
    """ffmpeg ran but did not produce a usable output file."""


# =============================================================================
# Interfaces
# =============================================================================


@dataclass(frozen=True)
class VideoGeometry:
    """Frame size of a video stream in pixels."""

    width: int
    height: int


class MediaProber(Protocol):
    async def probe(self, path: str) -> VideoGeometry: ...


class ContainerRemuxer(Protocol):
    async def remux(self, path: str) -> str: ...


# =============================================================================
# Subprocess helper
# =============================================================================


async def run_process(*cmd: str) -> tuple[int, bytes, bytes]:
    """
    Run a command to completion, capturing stdout and stderr.

    Args:
        *cmd: Executable and arguments

    Returns:
        Tuple of (return code, stdout, stderr)

    Raises:
        OSError: If the executable cannot be started
        asyncio.CancelledError: After killing the child when cancelled
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        logger.warning("Killed %s after cancellation", cmd[0])
        raise
    return process.returncode, stdout, stderr


def _decode(stream: bytes) -> str:
    return stream.decode("utf-8", errors="replace").strip()


# =============================================================================
# ffprobe
# =============================================================================


class FFprobeProber:
    """MediaProber backed by the ffprobe executable."""

    def __init__(self, ffprobe_path: str = "ffprobe") -> None:
        self.ffprobe_path = ffprobe_path

    def build_command(self, path: str) -> list[str]:
        return [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-select_streams",
            "v:0",
            "-show_streams",
            path,
        ]

    async def probe(self, path: str) -> VideoGeometry:
        """
        Read the width and height of the first video stream.

        Args:
            path: Local media file

        Returns:
            VideoGeometry of the first video stream

        Raises:
            ProbeInvocationError: ffprobe missing or exited non-zero
            ProbeOutputError: Output is not JSON or lacks integer dimensions
            NoVideoStreamError: No video stream in the file
        """
        try:
            returncode, stdout, stderr = await run_process(*self.build_command(path))
        except OSError as e:
            raise ProbeInvocationError(f"Could not run {self.ffprobe_path}: {e}") from e

        if returncode != 0:
            raise ProbeInvocationError(
                f"ffprobe exited with status {returncode}", stderr=_decode(stderr)
            )

        return self.parse_output(stdout)

    @staticmethod
    def parse_output(stdout: bytes) -> VideoGeometry:
        """
        Extract geometry from ``ffprobe -print_format json -show_streams`` output.

        Raises:
            ProbeOutputError: Output is not a JSON object or dimensions are missing
            NoVideoStreamError: ``streams`` is empty
        """
        try:
            document: Any = json.loads(stdout)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProbeOutputError(f"ffprobe output is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise ProbeOutputError("ffprobe output is not a JSON object")

        streams = document.get("streams")
        if streams is None:
            raise ProbeOutputError("ffprobe output has no 'streams' field")
        if not isinstance(streams, list):
            raise ProbeOutputError("ffprobe 'streams' field is not a list")
        if not streams:
            raise NoVideoStreamError("No video streams found")

        stream = streams[0]
        if not isinstance(stream, dict):
            raise ProbeOutputError("ffprobe stream entry is not an object")

        width = stream.get("width")
        height = stream.get("height")
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ProbeOutputError(f"ffprobe stream has no integer {name}")

        return VideoGeometry(width=width, height=height)


# =============================================================================
# ffmpeg
# =============================================================================


class FFmpegRemuxer:
    """ContainerRemuxer backed by the ffmpeg executable."""

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self.ffmpeg_path = ffmpeg_path

    @staticmethod
    def output_path_for(path: str) -> str:
        return f"{path}{PROCESSING_SUFFIX}"

    def build_command(self, path: str, output_path: str) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-i",
            path,
            "-movflags",
            "faststart",
            "-codec",
            "copy",
            "-f",
            "mp4",
            output_path,
        ]

    async def remux(self, path: str) -> str:
        """
        Rewrite ``path`` with fast-start layout into ``<path>.processing``.

        The caller owns the returned file and must remove it. On failure any
        partial output is removed here.

        Args:
            path: Local mp4 file

        Returns:
            Path of the remuxed file

        Raises:
            RemuxInvocationError: ffmpeg could not be started
            RemuxFailedError: Non-zero exit, or missing/empty output (carries stderr)
        """
        output_path = self.output_path_for(path)

        try:
            returncode, _, stderr = await run_process(*self.build_command(path, output_path))
        except OSError as e:
            raise RemuxInvocationError(f"Could not run {self.ffmpeg_path}: {e}") from e
        except asyncio.CancelledError:
            _remove_quietly(output_path)
            raise

        diagnostics = _decode(stderr)
        try:
            if returncode != 0:
                raise RemuxFailedError(
                    f"ffmpeg exited with status {returncode}", stderr=diagnostics
                )
            try:
                size = os.stat(output_path).st_size
            except FileNotFoundError:
                raise RemuxFailedError(
                    "ffmpeg produced no output file", stderr=diagnostics
                ) from None
            if size == 0:
                raise RemuxFailedError("ffmpeg produced an empty output file", stderr=diagnostics)
        except RemuxFailedError:
            _remove_quietly(output_path)
            raise

        logger.debug("Remuxed %s", path, extra={"output_path": output_path, "bytes": size})
        return output_path


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


__all__ = [
    "PROCESSING_SUFFIX",
    "ContainerRemuxer",
    "FFmpegRemuxer",
    "FFprobeProber",
    "MediaProber",
    "MediaServiceError",
    "NoVideoStreamError",
    "ProbeError",
    "ProbeInvocationError",
    "ProbeOutputError",
    "RemuxError",
    "RemuxFailedError",
    "RemuxInvocationError",
    "VideoGeometry",
    "run_process",
]
