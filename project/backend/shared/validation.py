"""
Validation utilities.

Shared validation utilities for stitch requests: clip count, source URL
policy, and download filename sanitizing.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlsplit

from shared.errors import ValidationError

MIN_CLIPS = 2
MAX_FILENAME_LENGTH = 120
DEFAULT_FILENAME = "film"

_DEFAULT_PORTS = {"http": 80, "https": 443}
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def normalize_origin(url: str) -> str:
    """
    Reduce a URL to its origin (scheme://host[:port]).

    Default ports are dropped so "https://a.com:443" and "https://a.com"
    compare equal.
    """
    parts = urlsplit(url)
    scheme = (parts.scheme or "").lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def validate_clip_count(count: int) -> None:
    """
    Validate that enough clips were supplied.

    Raises:
        ValidationError: If fewer than MIN_CLIPS clips were given
    """
    if count < MIN_CLIPS:
        raise ValidationError(f"Need at least {MIN_CLIPS} video URLs to stitch.")


def resolve_clip_url(
    raw_url: Optional[str],
    origin: str,
    trusted_suffixes: Iterable[str] = ()
) -> str:
    """
    Resolve and validate a source clip URL.

    Relative paths are resolved against the service origin. The result must be
    same-origin or hosted on a trusted storage domain.

    Args:
        raw_url: URL as sent by the client
        origin: Origin the service is reachable at
        trusted_suffixes: Hostname suffixes of trusted blob storage

    Returns:
        Absolute URL that may be fetched

    Raises:
        ValidationError: If the URL is missing, ephemeral, or not allowed
    """
    url = (raw_url or "").strip()
    if not url:
        raise ValidationError("Missing clip url")

    # blob: URLs only exist inside the browser tab that created them
    if url.lower().startswith("blob:"):
        raise ValidationError(
            "Cannot stitch non-persisted blob: URLs. Please render/upload videos first."
        )

    if url.startswith("/") and not url.startswith("//"):
        url = urljoin(origin.rstrip("/") + "/", url)

    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise ValidationError(f"URL not allowed for stitching: {url}")

    if normalize_origin(url) == normalize_origin(origin):
        return url

    hostname = parts.hostname.lower()
    for suffix in trusted_suffixes:
        if hostname.endswith(suffix.lower()):
            return url

    raise ValidationError(f"URL not allowed for stitching: {url}")


def resolve_clip_urls(
    raw_urls: List[Optional[str]],
    origin: str,
    trusted_suffixes: Iterable[str] = ()
) -> List[str]:
    """Resolve every clip URL in order, failing on the first rejected one."""
    suffixes = list(trusted_suffixes)
    return [resolve_clip_url(url, origin, suffixes) for url in raw_urls]


def sanitize_filename(title: Optional[str]) -> str:
    """
    Derive a safe download filename stem from a project title.

    Runs of characters outside [A-Za-z0-9._-] collapse to "_", the result is
    capped at MAX_FILENAME_LENGTH characters, and empty titles become "film".
    """
    base = (title or DEFAULT_FILENAME).strip() or DEFAULT_FILENAME
    return _UNSAFE_FILENAME_CHARS.sub("_", base)[:MAX_FILENAME_LENGTH]
