"""
Clip concatenation for stitcher module.

Joins normalized clips in order. A stream-copy join is attempted first; if it
fails for any reason the clips are re-encoded during concatenation.
"""
from pathlib import Path
from typing import List

from shared.errors import ConcatFailure, EngineFailure
from shared.logging import get_logger
from .config import MANIFEST_FILENAME, OUTPUT_FILENAME
from .filters import EVEN_SCALE
from .normalizer import audio_encode_args, video_encode_args
from .utils import run_ffmpeg_command

logger = get_logger("stitcher.concatenator")


def write_manifest(clip_paths: List[Path], temp_dir: Path) -> Path:
    """
    Write the concat demuxer manifest.

    Entries are file names relative to temp_dir, in film order.
    """
    manifest_path = temp_dir / MANIFEST_FILENAME
    lines = []
    for clip_path in clip_paths:
        name = Path(clip_path).name.replace("'", "'\\''")
        lines.append(f"file '{name}'")
    manifest_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return manifest_path


def build_copy_args(manifest_name: str, output_name: str) -> List[str]:
    return [
        "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", manifest_name,
        "-c", "copy",  # Stream copy (fast, no re-encoding)
        output_name,
    ]


def build_reencode_args(manifest_name: str, output_name: str, audio_enabled: bool) -> List[str]:
    args = [
        "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", manifest_name,
        "-vf", EVEN_SCALE,
        *video_encode_args(),
    ]
    args.extend(audio_encode_args() if audio_enabled else ["-an"])
    args.append(output_name)
    return args


def _check_output(output_path: Path) -> bool:
    return output_path.exists() and output_path.stat().st_size > 0


async def concatenate_clips(
    clip_paths: List[Path],
    audio_enabled: bool,
    temp_dir: Path
) -> Path:
    """
    Concatenate normalized clips into the final output file.

    Args:
        clip_paths: Normalized clips in film order
        audio_enabled: Whether the output carries an audio track
        temp_dir: Scratch workspace (engine working directory)

    Returns:
        Path to the concatenated output

    Raises:
        ConcatFailure: If both the copy and the re-encode attempt fail
    """
    manifest_path = write_manifest(clip_paths, temp_dir)
    output_path = temp_dir / OUTPUT_FILENAME

    logger.info(
        f"Concatenating {len(clip_paths)} clips (stream copy)",
        extra={"clip_count": len(clip_paths)}
    )
    try:
        await run_ffmpeg_command(build_copy_args(manifest_path.name, output_path.name), cwd=temp_dir)
        if _check_output(output_path):
            return output_path
        logger.warning("Stream copy produced no output, re-encoding")
    except EngineFailure as e:
        logger.warning(
            "Stream copy concatenation failed, re-encoding",
            extra={"exit_code": e.exit_code, "error": e.diagnostic_tail[-500:]}
        )

    try:
        await run_ffmpeg_command(
            build_reencode_args(manifest_path.name, output_path.name, audio_enabled),
            cwd=temp_dir
        )
    except EngineFailure as e:
        raise ConcatFailure(
            f"Failed to concatenate clips: {e}",
            diagnostic_tail=e.diagnostic_tail
        ) from e

    if not _check_output(output_path):
        raise ConcatFailure(f"Concatenated video not created: {output_path.name}")

    return output_path
