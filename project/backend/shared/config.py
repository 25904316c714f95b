"""
Configuration management.

Centralized environment variable management and validation.
"""

from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # LOG_DIR: when set, logs are also written to a rotating file in this directory
    log_dir: Optional[str] = None

    # Frontend configuration (CORS). Empty disables cross-origin access.
    frontend_url: Optional[str] = None

    # Codec engine
    # FFMPEG_BINARY: name or path of the ffmpeg executable (looked up in PATH)
    ffmpeg_binary: str = "ffmpeg"
    # FFMPEG_TIMEOUT: seconds before a single engine invocation is killed (0 disables)
    ffmpeg_timeout: float = 300.0
    # Characters of engine stderr retained when probing (the banner precedes the streams)
    probe_output_limit: int = 65536

    # Clip fetching
    # PUBLIC_ORIGIN: origin the service is reachable at. Defaults to the request's own origin.
    public_origin: Optional[str] = None
    # TRUSTED_STORAGE_SUFFIXES: hostname suffixes of trusted blob storage domains
    trusted_storage_suffixes: List[str] = [".public.blob.vercel-storage.com"]
    download_timeout: float = 120.0

    # Pipeline
    # MAX_CONCURRENT_STITCHES: pipelines allowed to run at once in this process (0 = unlimited)
    max_concurrent_stitches: int = 2
    scratch_prefix: str = "clip-stitch-"
    stream_chunk_size: int = 64 * 1024

    @field_validator("frontend_url", "public_origin")
    @classmethod
    def validate_origin_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate optional origin URLs."""
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ConfigError("Origin URLs must be valid HTTP/HTTPS URLs")
        if not urlparse(v).hostname:
            raise ConfigError(f"Origin URL has no hostname: {v}")
        return v.rstrip("/")

    @field_validator("trusted_storage_suffixes")
    @classmethod
    def validate_trusted_storage_suffixes(cls, v: List[str]) -> List[str]:
        """Suffixes must start with a dot so they only match whole labels."""
        cleaned = []
        for suffix in v:
            suffix = suffix.strip().lower()
            if not suffix:
                continue
            if not suffix.startswith("."):
                raise ConfigError(
                    f"TRUSTED_STORAGE_SUFFIXES entries must start with '.': {suffix}"
                )
            cleaned.append(suffix)
        return cleaned

    @field_validator("ffmpeg_binary")
    @classmethod
    def validate_ffmpeg_binary(cls, v: str) -> str:
        """Validate ffmpeg binary name."""
        if not v or not v.strip():
            raise ConfigError("FFMPEG_BINARY must not be empty")
        return v.strip()

    @field_validator("ffmpeg_timeout", "download_timeout")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        """Timeouts may not be negative."""
        if v < 0:
            raise ConfigError("Timeouts must be >= 0")
        return v

    @field_validator("max_concurrent_stitches")
    @classmethod
    def validate_max_concurrent_stitches(cls, v: int) -> int:
        """Validate admission limit."""
        if v < 0:
            raise ConfigError("MAX_CONCURRENT_STITCHES must be >= 0")
        return v

    @field_validator("probe_output_limit", "stream_chunk_size")
    @classmethod
    def validate_positive_sizes(cls, v: int) -> int:
        """Buffer sizes must be positive."""
        if v <= 0:
            raise ConfigError("Buffer sizes must be positive")
        return v


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e
