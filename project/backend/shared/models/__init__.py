"""
Data models for the stitch pipeline.

This module exports all Pydantic models used across pipeline modules.
"""

from .stitch import (
    ClipSpec,
    AudioOptions,
    PostOptions,
    StitchRequest,
    ProbedMedia
)

__all__ = [
    "ClipSpec",
    "AudioOptions",
    "PostOptions",
    "StitchRequest",
    "ProbedMedia",
]
