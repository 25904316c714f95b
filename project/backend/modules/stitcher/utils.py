"""
Utility functions for stitcher module.

FFmpeg command execution and availability checks. Every call starts a fresh
engine process; nothing is shared between invocations.
"""
import asyncio
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

from shared.config import settings
from shared.errors import EngineFailure, EngineUnavailable
from shared.logging import get_logger
from .config import DIAGNOSTIC_TAIL_CHARS

logger = get_logger("stitcher.utils")

_READ_CHUNK = 4096


def check_ffmpeg_available() -> bool:
    """
    Check if FFmpeg is installed and available in PATH.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    return shutil.which(settings.ffmpeg_binary) is not None


def resolve_ffmpeg_binary() -> str:
    """
    Resolve the configured FFmpeg executable.

    Raises:
        EngineUnavailable: If the binary cannot be found
    """
    binary = shutil.which(settings.ffmpeg_binary)
    if binary is None:
        raise EngineUnavailable(
            f"FFmpeg not found ({settings.ffmpeg_binary}). Please install FFmpeg:\n"
            "  macOS: brew install ffmpeg\n"
            "  Linux: apt-get install ffmpeg or yum install ffmpeg\n"
            "  Windows: Download from https://ffmpeg.org/"
        )
    return binary


async def _collect_stderr_tail(process: asyncio.subprocess.Process, limit: int) -> str:
    """Drain stderr until EOF, keeping only the last `limit` characters."""
    tail = ""
    while True:
        chunk = await process.stderr.read(_READ_CHUNK)
        if not chunk:
            break
        tail = (tail + chunk.decode("utf-8", errors="replace"))[-limit:]
    await process.wait()
    return tail


async def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()


async def run_ffmpeg_command(
    args: Sequence[str],
    cwd: Path,
    timeout: Optional[float] = None,
    tail_limit: int = DIAGNOSTIC_TAIL_CHARS,
    check: bool = True
) -> str:
    """
    Run FFmpeg with the given arguments inside a working directory.

    Args:
        args: FFmpeg arguments (without the binary itself)
        cwd: Working directory; relative file names resolve against it
        timeout: Seconds before the process is killed (default: settings.ffmpeg_timeout, 0 disables)
        tail_limit: Characters of stderr to retain
        check: Raise EngineFailure on a non-zero exit code

    Returns:
        The retained tail of FFmpeg's diagnostic output

    Raises:
        EngineUnavailable: If the FFmpeg binary is missing
        EngineFailure: If FFmpeg cannot be started, times out, or exits non-zero
    """
    binary = resolve_ffmpeg_binary()
    cmd: List[str] = [binary, *args]
    if timeout is None:
        timeout = settings.ffmpeg_timeout or None

    logger.info(
        f"Running FFmpeg command: {' '.join(cmd)}",
        extra={"command": cmd, "cwd": str(cwd)}
    )

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE
        )
    except (FileNotFoundError, PermissionError) as e:
        if not Path(binary).exists():
            raise EngineUnavailable(f"FFmpeg binary not available: {e}") from e
        raise EngineFailure(f"FFmpeg could not be started: {e}") from e
    except OSError as e:
        raise EngineFailure(f"FFmpeg could not be started: {e}") from e

    try:
        diagnostics = await asyncio.wait_for(
            _collect_stderr_tail(process, tail_limit), timeout=timeout
        )
    except asyncio.TimeoutError:
        raise EngineFailure(f"FFmpeg command timeout after {timeout}s")
    finally:
        if process.returncode is None:
            await _kill(process)

    if check and process.returncode != 0:
        logger.error(
            f"FFmpeg command failed (code {process.returncode})",
            extra={"exit_code": process.returncode, "error": diagnostics[-500:]}
        )
        raise EngineFailure(
            f"ffmpeg failed (code {process.returncode}). {diagnostics}",
            exit_code=process.returncode,
            diagnostic_tail=diagnostics
        )

    return diagnostics
