"""
Filter graph construction for stitcher module.

Each effect (scale, speed, color, fades, tempo) is an explicit step whose
parameters are clamped before being serialized into FFmpeg filter syntax.
Only numbers produced here ever reach the filter graph.
"""
import math
from dataclasses import dataclass, field
from typing import List, Optional

from shared.models.stitch import PostOptions
from .config import (
    ATEMPO_STAGE_MIN,
    ATEMPO_STAGE_MAX,
    AUDIO_CHANNEL_LAYOUT,
    AUDIO_SAMPLE_RATE,
    BRIGHTNESS_RANGE,
    CONTRAST_RANGE,
    SATURATION_RANGE,
)

EVEN_SCALE = "scale=trunc(iw/2)*2:trunc(ih/2)*2"


def clamp_number(value: object, minimum: float, maximum: float, fallback: float) -> float:
    """
    Clamp a loosely-typed number into [minimum, maximum].

    Missing, non-numeric, and non-finite values yield `fallback`.
    """
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return min(maximum, max(minimum, number))


def format_number(value: float) -> str:
    """Serialize a number for filter syntax without float noise."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def atempo_stages(speed: float) -> List[float]:
    """
    Split a tempo ratio into atempo stages that each stay within [0.5, 2.0].

    speed=4.0 gives [2.0, 2.0]; speed=0.25 gives [0.5, 0.5].
    """
    if speed <= 0 or not math.isfinite(speed):
        raise ValueError(f"Tempo ratio must be positive and finite: {speed}")

    stages: List[float] = []
    remaining = speed
    while remaining < ATEMPO_STAGE_MIN:
        stages.append(ATEMPO_STAGE_MIN)
        remaining /= ATEMPO_STAGE_MIN
    while remaining > ATEMPO_STAGE_MAX:
        stages.append(ATEMPO_STAGE_MAX)
        remaining /= ATEMPO_STAGE_MAX
    stages.append(remaining)

    return [
        round(clamp_number(stage, ATEMPO_STAGE_MIN, ATEMPO_STAGE_MAX, 1.0), 3)
        for stage in stages
    ]


@dataclass(frozen=True)
class ColorAdjust:
    """Clamped brightness/contrast/saturation adjustment."""

    brightness: float = BRIGHTNESS_RANGE[2]
    contrast: float = CONTRAST_RANGE[2]
    saturation: float = SATURATION_RANGE[2]

    @classmethod
    def from_options(cls, post: Optional[PostOptions]) -> "ColorAdjust":
        post = post or PostOptions()
        return cls(
            brightness=clamp_number(post.brightness, *BRIGHTNESS_RANGE),
            contrast=clamp_number(post.contrast, *CONTRAST_RANGE),
            saturation=clamp_number(post.saturation, *SATURATION_RANGE),
        )

    @property
    def is_neutral(self) -> bool:
        return (
            self.brightness == BRIGHTNESS_RANGE[2]
            and self.contrast == CONTRAST_RANGE[2]
            and self.saturation == SATURATION_RANGE[2]
        )

    def render(self) -> str:
        return (
            f"eq=brightness={format_number(self.brightness)}"
            f":contrast={format_number(self.contrast)}"
            f":saturation={format_number(self.saturation)}"
        )


@dataclass
class VideoFilterChain:
    """Ordered video filter steps for one clip."""

    steps: List[str] = field(default_factory=list)

    def scale_even(self) -> "VideoFilterChain":
        self.steps.append(EVEN_SCALE)
        return self

    def speed(self, speed: float) -> "VideoFilterChain":
        if speed <= 0:
            raise ValueError(f"Speed must be positive: {speed}")
        self.steps.append(f"setpts=PTS/{format_number(speed)}")
        return self

    def color(self, adjust: ColorAdjust) -> "VideoFilterChain":
        if not adjust.is_neutral:
            self.steps.append(adjust.render())
        return self

    def fade_in(self, duration: float) -> "VideoFilterChain":
        if duration > 0:
            self.steps.append(f"fade=t=in:st=0:d={format_number(duration)}")
        return self

    def fade_out(self, start: float, duration: float) -> "VideoFilterChain":
        if duration > 0:
            self.steps.append(
                f"fade=t=out:st={format_number(max(0.0, start))}:d={format_number(duration)}"
            )
        return self

    def render(self) -> str:
        return ",".join(self.steps)


@dataclass
class AudioFilterChain:
    """Ordered audio filter steps for one clip."""

    steps: List[str] = field(default_factory=list)

    def tempo(self, speed: float) -> "AudioFilterChain":
        if speed != 1.0:
            self.steps.extend(f"atempo={format_number(stage)}" for stage in atempo_stages(speed))
        return self

    def fade_in(self, duration: float) -> "AudioFilterChain":
        if duration > 0:
            self.steps.append(f"afade=t=in:st=0:d={format_number(duration)}")
        return self

    def fade_out(self, start: float, duration: float) -> "AudioFilterChain":
        if duration > 0:
            self.steps.append(
                f"afade=t=out:st={format_number(max(0.0, start))}:d={format_number(duration)}"
            )
        return self

    def resample(self) -> "AudioFilterChain":
        self.steps.append(
            f"aformat=sample_rates={AUDIO_SAMPLE_RATE}:channel_layouts={AUDIO_CHANNEL_LAYOUT}"
        )
        return self

    def render(self) -> str:
        return ",".join(self.steps)


def silence_source() -> str:
    """lavfi source producing endless stereo 48kHz silence."""
    return f"anullsrc=r={AUDIO_SAMPLE_RATE}:cl={AUDIO_CHANNEL_LAYOUT}"


def silence_trim(duration: float) -> str:
    """Trim the silence source to an exact duration starting at zero."""
    return f"atrim=0:{format_number(duration)},asetpts=PTS-STARTPTS"
