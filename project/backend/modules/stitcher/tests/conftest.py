"""
Pytest fixtures for stitcher tests.
"""
import subprocess
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.models.stitch import AudioOptions, ClipSpec, PostOptions, StitchRequest

ORIGIN = "https://app.example.com"
BLOB_HOST = "https://store.public.blob.vercel-storage.com"


@pytest.fixture
def origin():
    return ORIGIN


@pytest.fixture
def sample_request():
    """Factory for stitch requests with N blob-hosted clips."""
    def _create_request(
        count: int = 2,
        audio: bool = False,
        title: Optional[str] = "My Film",
        **clip_kwargs
    ) -> StitchRequest:
        return StitchRequest(
            clips=[ClipSpec(url=f"{BLOB_HOST}/clip{i}.mp4", **clip_kwargs) for i in range(count)],
            title=title,
            audio=AudioOptions(enabled=audio),
            post=PostOptions(),
        )
    return _create_request


@pytest.fixture
def mock_subprocess():
    """Factory for fake asyncio subprocesses with scripted stderr."""
    def _create_process(returncode: int = 0, stderr_chunks=()):
        process = MagicMock()
        process.stderr.read = AsyncMock(side_effect=[*stderr_chunks, b""])
        process.wait = AsyncMock(return_value=returncode)
        process.returncode = returncode
        return process
    return _create_process


def create_test_video(
    output_path: Path,
    duration: float = 1.0,
    width: int = 320,
    height: int = 240,
    with_audio: bool = False
) -> None:
    """
    Create a small test video with FFmpeg.

    Args:
        output_path: Path to output video file
        duration: Duration in seconds
        width: Video width
        height: Video height
        with_audio: Add a sine tone audio track
    """
    cmd = [
        "ffmpeg", "-y", "-hide_banner", "-loglevel", "error",
        "-f", "lavfi",
        "-i", f"testsrc=size={width}x{height}:rate=25:duration={duration}",
    ]
    if with_audio:
        cmd += ["-f", "lavfi", "-i", f"sine=frequency=440:sample_rate=44100:duration={duration}"]
    cmd += ["-c:v", "libx264", "-preset", "ultrafast", "-pix_fmt", "yuv420p"]
    if with_audio:
        cmd += ["-c:a", "aac", "-shortest"]
    cmd.append(str(output_path))
    subprocess.run(cmd, capture_output=True, timeout=60, check=True)


@pytest.fixture
def create_test_video_file():
    """Fixture that returns the create_test_video function."""
    return create_test_video
