"""
Error taxonomy.

All pipeline failures derive from PipelineError so callers can translate them
into a single error outcome.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, stitch_id: Optional[object] = None):
        super().__init__(message)
        self.message = message
        self.stitch_id = stitch_id


class ConfigError(PipelineError):
    """Invalid or missing configuration."""


class ValidationError(PipelineError):
    """Bad or insufficient input. No engine work has been performed."""


class StitchError(PipelineError):
    """Failure while running the stitch pipeline."""


class EngineUnavailable(StitchError):
    """The codec engine binary is missing from the runtime. Not retryable."""


class EngineFailure(StitchError):
    """The codec engine exited non-zero or could not be started."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        diagnostic_tail: str = "",
        stitch_id: Optional[object] = None,
    ):
        super().__init__(message, stitch_id=stitch_id)
        self.exit_code = exit_code
        self.diagnostic_tail = diagnostic_tail


class DownloadFailure(StitchError):
    """A source clip could not be fetched."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        clip_index: Optional[int] = None,
        stitch_id: Optional[object] = None,
    ):
        super().__init__(message, stitch_id=stitch_id)
        self.status = status
        self.clip_index = clip_index


class ProbeFailure(StitchError):
    """Duration or stream layout of a source clip could not be determined."""


class NormalizeFailure(StitchError):
    """The engine rejected a clip's filter graph or encode."""

    def __init__(self, message: str, diagnostic_tail: str = "", stitch_id: Optional[object] = None):
        super().__init__(message, stitch_id=stitch_id)
        self.diagnostic_tail = diagnostic_tail


class ConcatFailure(StitchError):
    """Both the stream-copy and the re-encode concatenation failed."""

    def __init__(self, message: str, diagnostic_tail: str = "", stitch_id: Optional[object] = None):
        super().__init__(message, stitch_id=stitch_id)
        self.diagnostic_tail = diagnostic_tail
