"""
Stitch request data models.

Defines the wire format of a stitch request (camelCase, as sent by the web
client) and the per-clip metadata derived during processing.
"""

import math
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


def loose_number(value: Any) -> Optional[float]:
    """
    Coerce an edit value to a finite float, or None.

    Unparseable and non-finite values become None so the default for the
    field applies when it is clamped.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class ClipSpec(BaseModel):
    """One source clip and its edit directives."""

    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    trim_start_sec: Optional[float] = Field(default=None, alias="trimStartSec")
    trim_end_sec: Optional[float] = Field(default=None, alias="trimEndSec")
    speed: Optional[float] = Field(default=None, description="Playback speed, clamped to 0.25-2.0")
    fade_in_sec: Optional[float] = Field(default=None, alias="fadeInSec")
    fade_out_sec: Optional[float] = Field(default=None, alias="fadeOutSec")

    @field_validator("trim_start_sec", "trim_end_sec", "speed", "fade_in_sec", "fade_out_sec", mode="before")
    @classmethod
    def coerce_edit_value(cls, v: Any) -> Optional[float]:
        return loose_number(v)


class AudioOptions(BaseModel):
    """Audio handling for the whole film."""

    enabled: bool = False


class PostOptions(BaseModel):
    """Global color post-processing. Values are clamped when applied."""

    brightness: Optional[float] = Field(default=None, description="-1..1, neutral 0")
    contrast: Optional[float] = Field(default=None, description="0..2, neutral 1")
    saturation: Optional[float] = Field(default=None, description="0..3, neutral 1")

    @field_validator("brightness", "contrast", "saturation", mode="before")
    @classmethod
    def coerce_post_value(cls, v: Any) -> Optional[float]:
        return loose_number(v)


class StitchRequest(BaseModel):
    """Ordered clips plus global options for one stitch operation."""

    clips: List[ClipSpec] = Field(default_factory=list)
    # Older clients send a bare list of URLs
    urls: Optional[List[Optional[str]]] = None
    title: Optional[str] = None
    audio: AudioOptions = Field(default_factory=AudioOptions)
    post: PostOptions = Field(default_factory=PostOptions)

    def effective_clips(self) -> List[ClipSpec]:
        """Return the clips to stitch, falling back to the legacy url list."""
        if self.clips:
            return list(self.clips)
        return [ClipSpec(url=url) for url in (self.urls or []) if url]


class ProbedMedia(BaseModel):
    """Metadata extracted once per source clip."""

    model_config = ConfigDict(frozen=True)

    duration_sec: float = Field(gt=0, description="Source duration in seconds")
    has_audio: bool
