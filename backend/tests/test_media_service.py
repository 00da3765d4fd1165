"""
Media Service Test Suite for Tubely

ffprobe and ffmpeg are never executed here: ``asyncio.create_subprocess_exec``
is patched with a fake process so the tests cover command construction,
output parsing, failure mapping, output cleanup and cancellation handling.
"""

import asyncio
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tubely.services.media_service import (
    FFmpegRemuxer,
    FFprobeProber,
    NoVideoStreamError,
    ProbeInvocationError,
    ProbeOutputError,
    RemuxFailedError,
    RemuxInvocationError,
    VideoGeometry,
    run_process,
)


# =============================================================================
# Fixtures
# =============================================================================


def fake_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    return process


def patch_exec(*, process: Any = None, side_effect: Any = None):
    return patch(
        "tubely.services.media_service.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=process, side_effect=side_effect),
    )


def probe_json(*streams: dict) -> bytes:
    return json.dumps({"streams": list(streams)}).encode()


@pytest.fixture
def staged_file(tmp_path: Path) -> Path:
    path = tmp_path / "tubely-upload-abc.mp4"
    path.write_bytes(b"\x00" * 128)
    return path


# =============================================================================
# run_process
# =============================================================================


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_returns_exit_status_and_output(self) -> None:
        process = fake_process(returncode=3, stdout=b"out", stderr=b"err")

        with patch_exec(process=process) as exec_mock:
            result = await run_process("ffprobe", "-v", "error")

        assert result == (3, b"out", b"err")
        args, kwargs = exec_mock.call_args
        assert args == ("ffprobe", "-v", "error")
        assert kwargs["stdin"] == asyncio.subprocess.DEVNULL
        assert kwargs["stdout"] == asyncio.subprocess.PIPE

    @pytest.mark.asyncio
    async def test_cancellation_kills_child(self) -> None:
        process = fake_process()
        process.returncode = None
        process.communicate = AsyncMock(side_effect=asyncio.CancelledError())

        with patch_exec(process=process), pytest.raises(asyncio.CancelledError):
            await run_process("ffmpeg", "-i", "in.mp4")

        process.kill.assert_called_once()
        process.wait.assert_awaited_once()


# =============================================================================
# ffprobe
# =============================================================================


class TestFFprobeParseOutput:
    """Test suite for FFprobeProber.parse_output."""

    def test_first_stream_geometry(self) -> None:
        output = probe_json({"width": 1080, "height": 1920}, {"width": 10, "height": 10})

        assert FFprobeProber.parse_output(output) == VideoGeometry(width=1080, height=1920)

    def test_no_streams(self) -> None:
        with pytest.raises(NoVideoStreamError, match="No video streams found"):
            FFprobeProber.parse_output(probe_json())

    @pytest.mark.parametrize(
        "output",
        [
            b"not json",
            b"[1, 2, 3]",
            b"{}",
            b'{"streams": {"width": 1}}',
            b'{"streams": ["oops"]}',
        ],
    )
    def test_malformed_document(self, output: bytes) -> None:
        with pytest.raises(ProbeOutputError):
            FFprobeProber.parse_output(output)

    @pytest.mark.parametrize(
        "stream",
        [
            {"height": 1080},
            {"width": 1920},
            {"width": "1920", "height": 1080},
            {"width": 1920.0, "height": 1080},
            {"width": True, "height": 1080},
        ],
    )
    def test_missing_or_non_integer_dimensions(self, stream: dict) -> None:
        with pytest.raises(ProbeOutputError):
            FFprobeProber.parse_output(probe_json(stream))


class TestFFprobeProber:
    """Test suite for FFprobeProber.probe."""

    def test_command(self) -> None:
        prober = FFprobeProber("/usr/bin/ffprobe")

        assert prober.build_command("/tmp/in.mp4") == [
            "/usr/bin/ffprobe",
            "-v",
            "error",
            "-print_format",
            "json",
            "-select_streams",
            "v:0",
            "-show_streams",
            "/tmp/in.mp4",
        ]

    @pytest.mark.asyncio
    async def test_probe(self, staged_file: Path) -> None:
        process = fake_process(stdout=probe_json({"width": 1920, "height": 1080}))

        with patch_exec(process=process):
            geometry = await FFprobeProber().probe(str(staged_file))

        assert geometry == VideoGeometry(1920, 1080)

    @pytest.mark.asyncio
    async def test_non_zero_exit_carries_stderr(self, staged_file: Path) -> None:
        process = fake_process(returncode=1, stderr=b"Invalid data found when processing input")

        with patch_exec(process=process), pytest.raises(ProbeInvocationError) as exc_info:
            await FFprobeProber().probe(str(staged_file))

        assert "Invalid data" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_missing_executable(self, staged_file: Path) -> None:
        with patch_exec(side_effect=FileNotFoundError("ffprobe")), pytest.raises(
            ProbeInvocationError
        ):
            await FFprobeProber().probe(str(staged_file))


# =============================================================================
# ffmpeg
# =============================================================================


class TestFFmpegRemuxer:
    """Test suite for FFmpegRemuxer.remux."""

    def test_command(self) -> None:
        remuxer = FFmpegRemuxer("ffmpeg")
        output = FFmpegRemuxer.output_path_for("/tmp/in.mp4")

        command = remuxer.build_command("/tmp/in.mp4", output)

        assert output == "/tmp/in.mp4.processing"
        assert command == [
            "ffmpeg",
            "-y",
            "-i",
            "/tmp/in.mp4",
            "-movflags",
            "faststart",
            "-codec",
            "copy",
            "-f",
            "mp4",
            "/tmp/in.mp4.processing",
        ]

    @pytest.mark.asyncio
    async def test_success_returns_output_path(self, staged_file: Path) -> None:
        output = Path(f"{staged_file}.processing")

        async def create(*args: Any, **kwargs: Any) -> MagicMock:
            output.write_bytes(b"remuxed")
            return fake_process()

        with patch_exec(side_effect=create):
            result = await FFmpegRemuxer().remux(str(staged_file))

        assert result == str(output)
        assert output.read_bytes() == b"remuxed"

    @pytest.mark.asyncio
    async def test_non_zero_exit_removes_partial_output(self, staged_file: Path) -> None:
        output = Path(f"{staged_file}.processing")

        async def create(*args: Any, **kwargs: Any) -> MagicMock:
            output.write_bytes(b"partial")
            return fake_process(returncode=1, stderr=b"moov atom not found")

        with patch_exec(side_effect=create), pytest.raises(RemuxFailedError) as exc_info:
            await FFmpegRemuxer().remux(str(staged_file))

        assert "moov atom not found" in exc_info.value.stderr
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_missing_output(self, staged_file: Path) -> None:
        with patch_exec(process=fake_process()), pytest.raises(RemuxFailedError, match="no output"):
            await FFmpegRemuxer().remux(str(staged_file))

    @pytest.mark.asyncio
    async def test_empty_output_is_removed(self, staged_file: Path) -> None:
        output = Path(f"{staged_file}.processing")

        async def create(*args: Any, **kwargs: Any) -> MagicMock:
            output.write_bytes(b"")
            return fake_process()

        with patch_exec(side_effect=create), pytest.raises(RemuxFailedError, match="empty"):
            await FFmpegRemuxer().remux(str(staged_file))

        assert not output.exists()

    @pytest.mark.asyncio
    async def test_missing_executable(self, staged_file: Path) -> None:
        with patch_exec(side_effect=FileNotFoundError("ffmpeg")), pytest.raises(
            RemuxInvocationError
        ):
            await FFmpegRemuxer().remux(str(staged_file))

    @pytest.mark.asyncio
    async def test_cancellation_removes_partial_output(self, staged_file: Path) -> None:
        output = Path(f"{staged_file}.processing")
        process = fake_process()
        process.returncode = None
        process.communicate = AsyncMock(side_effect=asyncio.CancelledError())

        async def create(*args: Any, **kwargs: Any) -> MagicMock:
            output.write_bytes(b"partial")
            return process

        with patch_exec(side_effect=create), pytest.raises(asyncio.CancelledError):
            await FFmpegRemuxer().remux(str(staged_file))

        process.kill.assert_called_once()
        assert not output.exists()
