"""
Clip normalization for stitcher module.

Applies each clip's trim, speed, fades and the global color adjustment, and
re-encodes it to the uniform intermediate profile (H.264 yuv420p, even
dimensions, 48kHz stereo AAC when audio is enabled).
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from shared.errors import EngineFailure, NormalizeFailure
from shared.logging import get_logger
from shared.models.stitch import ClipSpec, PostOptions, ProbedMedia
from .config import (
    AUDIO_CHANNELS,
    AUDIO_CODEC,
    AUDIO_SAMPLE_RATE,
    FADE_MAX,
    FADE_MIN,
    MIN_TRIM_WINDOW,
    MOVFLAGS,
    NORMALIZED_FILENAME,
    PIXEL_FORMAT,
    SPEED_DEFAULT,
    SPEED_MAX,
    SPEED_MIN,
    VIDEO_CODEC,
    VIDEO_PRESET,
)
from .filters import (
    AudioFilterChain,
    ColorAdjust,
    VideoFilterChain,
    clamp_number,
    format_number,
    silence_source,
    silence_trim,
)
from .utils import run_ffmpeg_command

logger = get_logger("stitcher.normalizer")


@dataclass(frozen=True)
class EditWindow:
    """Clamped edit parameters of one clip."""

    speed: float
    trim_start: float
    trim_end: float
    fade_in: float
    fade_out: float

    @property
    def out_duration(self) -> float:
        """Duration of the normalized clip after trim and speed change."""
        return (self.trim_end - self.trim_start) / self.speed

    @property
    def fade_out_start(self) -> float:
        return max(0.0, self.out_duration - self.fade_out)


def resolve_edit_window(spec: ClipSpec, probed: ProbedMedia) -> EditWindow:
    """
    Clamp a clip's edit directives against its probed duration.

    Args:
        spec: Requested edits
        probed: Probed source metadata

    Returns:
        EditWindow with all values inside their legal ranges
    """
    duration = probed.duration_sec
    speed = clamp_number(spec.speed, SPEED_MIN, SPEED_MAX, SPEED_DEFAULT)
    trim_start = clamp_number(spec.trim_start_sec, 0.0, max(0.0, duration - MIN_TRIM_WINDOW), 0.0)
    if spec.trim_end_sec is not None:
        trim_end = clamp_number(spec.trim_end_sec, trim_start + MIN_TRIM_WINDOW, duration, duration)
    else:
        trim_end = duration

    return EditWindow(
        speed=speed,
        trim_start=trim_start,
        trim_end=trim_end,
        fade_in=clamp_number(spec.fade_in_sec, FADE_MIN, FADE_MAX, 0.0),
        fade_out=clamp_number(spec.fade_out_sec, FADE_MIN, FADE_MAX, 0.0),
    )


def build_video_filter(window: EditWindow, color: ColorAdjust) -> str:
    """Even scale, speed, optional color, optional fades."""
    return (
        VideoFilterChain()
        .scale_even()
        .speed(window.speed)
        .color(color)
        .fade_in(window.fade_in)
        .fade_out(window.fade_out_start, window.fade_out)
        .render()
    )


def build_audio_graph(window: EditWindow, has_audio: bool) -> str:
    """
    Build the filter_complex audio graph, labelled [a].

    Input 1 is always the lavfi silence source. When the source has audio it
    is tempo-adjusted, faded, resampled, and mixed over the silence so the
    track is continuous for the whole clip.
    """
    silence = f"[1:a]{silence_trim(window.out_duration)}"
    if not has_audio:
        return f"{silence}[a]"

    source = (
        AudioFilterChain()
        .tempo(window.speed)
        .fade_in(window.fade_in)
        .fade_out(window.fade_out_start, window.fade_out)
        .resample()
        .render()
    )
    return ";".join([
        f"[0:a:0]{source}[a0]",
        f"{silence}[a1]",
        "[a0][a1]amix=inputs=2:duration=longest:dropout_transition=0[a]",
    ])


def video_encode_args() -> List[str]:
    return [
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-pix_fmt", PIXEL_FORMAT,
        "-movflags", MOVFLAGS,
    ]


def audio_encode_args() -> List[str]:
    return [
        "-c:a", AUDIO_CODEC,
        "-ar", str(AUDIO_SAMPLE_RATE),
        "-ac", str(AUDIO_CHANNELS),
    ]


def build_normalize_args(
    input_name: str,
    output_name: str,
    window: EditWindow,
    has_audio: bool,
    audio_enabled: bool,
    color: ColorAdjust
) -> List[str]:
    """
    Build the FFmpeg argument list for one clip.

    The trim is applied as accurate input seeking so every filter sees a
    timeline starting at zero.
    """
    args = [
        "-y",
        "-ss", format_number(window.trim_start),
        "-to", format_number(window.trim_end),
        "-i", input_name,
    ]
    video_filter = build_video_filter(window, color)

    if not audio_enabled:
        return args + ["-vf", video_filter] + video_encode_args() + ["-an", output_name]

    return args + [
        "-f", "lavfi",
        "-i", silence_source(),
        "-filter_complex", f"[0:v:0]{video_filter}[v];{build_audio_graph(window, has_audio)}",
        "-map", "[v]",
        "-map", "[a]",
        *video_encode_args(),
        *audio_encode_args(),
        "-shortest",
        output_name,
    ]


async def normalize_clip(
    input_path: Path,
    spec: ClipSpec,
    probed: ProbedMedia,
    audio_enabled: bool,
    post: Optional[PostOptions],
    clip_index: int,
    temp_dir: Path
) -> Path:
    """
    Normalize one fetched clip into the scratch workspace.

    Args:
        input_path: Fetched source clip
        spec: Requested edits for the clip
        probed: Probed source metadata
        audio_enabled: Whether the film carries an audio track
        post: Global color post-processing
        clip_index: Position of the clip in the film
        temp_dir: Scratch workspace (engine working directory)

    Returns:
        Path to the normalized clip

    Raises:
        NormalizeFailure: If FFmpeg fails or produces no output
    """
    window = resolve_edit_window(spec, probed)
    output_path = temp_dir / NORMALIZED_FILENAME.format(index=clip_index)
    args = build_normalize_args(
        input_name=Path(input_path).name,
        output_name=output_path.name,
        window=window,
        has_audio=probed.has_audio,
        audio_enabled=audio_enabled,
        color=ColorAdjust.from_options(post),
    )

    logger.info(
        f"Normalizing clip {clip_index} ({window.trim_start:.2f}-{window.trim_end:.2f}s @ {window.speed}x "
        f"-> {window.out_duration:.2f}s)",
        extra={
            "clip_index": clip_index,
            "speed": window.speed,
            "out_duration": window.out_duration,
            "audio_enabled": audio_enabled,
            "has_audio": probed.has_audio,
        }
    )

    try:
        await run_ffmpeg_command(args, cwd=temp_dir)
    except EngineFailure as e:
        raise NormalizeFailure(
            f"Failed to normalize clip {clip_index + 1}: {e}",
            diagnostic_tail=e.diagnostic_tail
        ) from e

    if not output_path.exists():
        raise NormalizeFailure(f"Normalized clip not created: {output_path.name}")

    return output_path
