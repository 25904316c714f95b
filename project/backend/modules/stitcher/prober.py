"""
Media probing for stitcher module.

Reads duration and audio presence from the metadata banner FFmpeg prints
when run with an input and no output.
"""
import re
from pathlib import Path

from shared.config import settings
from shared.errors import ProbeFailure
from shared.logging import get_logger
from shared.models.stitch import ProbedMedia
from .utils import run_ffmpeg_command

logger = get_logger("stitcher.prober")

DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d+):(\d+(?:\.\d+)?)")
AUDIO_STREAM_PATTERN = re.compile(r"Stream #\S+.*?Audio:\s*")


def parse_duration(banner: str) -> float:
    """
    Parse the first "Duration: HH:MM:SS.frac" entry of an FFmpeg banner.

    Returns:
        Duration in seconds, or 0.0 if no duration is present
    """
    match = DURATION_PATTERN.search(banner)
    if not match:
        return 0.0
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_has_audio(banner: str) -> bool:
    """Check the banner for an audio stream descriptor."""
    return AUDIO_STREAM_PATTERN.search(banner) is not None


async def probe_media(file_path: Path, cwd: Path) -> ProbedMedia:
    """
    Probe a source clip for its duration and audio track.

    Args:
        file_path: Clip path (relative names resolve against cwd)
        cwd: Working directory for the engine

    Returns:
        ProbedMedia for the clip

    Raises:
        ProbeFailure: If no positive duration could be read
    """
    # No output file: FFmpeg prints the metadata and exits non-zero
    banner = await run_ffmpeg_command(
        ["-hide_banner", "-i", str(file_path)],
        cwd=cwd,
        tail_limit=settings.probe_output_limit,
        check=False
    )

    duration = parse_duration(banner)
    if duration <= 0:
        raise ProbeFailure(f"Unable to read duration for {Path(file_path).name}")

    probed = ProbedMedia(duration_sec=duration, has_audio=parse_has_audio(banner))
    logger.info(
        f"Probed {Path(file_path).name}: {probed.duration_sec:.2f}s, audio={probed.has_audio}",
        extra={"duration": probed.duration_sec, "has_audio": probed.has_audio}
    )
    return probed
