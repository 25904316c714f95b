"""
Tests for request validation utilities.
"""

import pytest
from shared.errors import ValidationError
from shared.validation import (
    normalize_origin,
    resolve_clip_url,
    resolve_clip_urls,
    sanitize_filename,
    validate_clip_count,
)

ORIGIN = "https://app.example.com"
TRUSTED = [".public.blob.vercel-storage.com"]


def test_normalize_origin():
    """Test origin normalization."""
    assert normalize_origin("https://App.Example.com:443/path?q=1") == "https://app.example.com"
    assert normalize_origin("http://localhost:8000/") == "http://localhost:8000"
    assert normalize_origin("http://localhost:80") == "http://localhost"


@pytest.mark.parametrize("count", [0, 1])
def test_validate_clip_count_too_few(count):
    """Test that fewer than 2 clips are rejected."""
    with pytest.raises(ValidationError, match="Need at least 2 video URLs to stitch."):
        validate_clip_count(count)


def test_validate_clip_count_ok():
    validate_clip_count(2)
    validate_clip_count(25)


def test_relative_url_resolves_against_origin():
    """Test that relative paths become same-origin URLs."""
    assert resolve_clip_url("/api/files/a.mp4", ORIGIN, TRUSTED) == "https://app.example.com/api/files/a.mp4"


def test_same_origin_url_allowed():
    assert resolve_clip_url("https://app.example.com/a.mp4", ORIGIN) == "https://app.example.com/a.mp4"


def test_trusted_storage_allowed():
    url = "https://abc123.public.blob.vercel-storage.com/clips/a.mp4"
    assert resolve_clip_url(url, ORIGIN, TRUSTED) == url


def test_blob_url_rejected():
    """Test that browser-local blob: URLs are rejected."""
    with pytest.raises(ValidationError, match="Cannot stitch non-persisted blob: URLs"):
        resolve_clip_url("blob:https://app.example.com/0f1e2d", ORIGIN, TRUSTED)


@pytest.mark.parametrize("url", [
    "https://evil.example.net/a.mp4",
    "https://public.blob.vercel-storage.com.evil.net/a.mp4",
    "http://app.example.com/a.mp4",
    "https://app.example.com:8443/a.mp4",
    "file:///etc/passwd",
    "//evil.example.net/a.mp4",
    "ftp://app.example.com/a.mp4",
])
def test_disallowed_urls_rejected(url):
    """Test that URLs outside the allow-list are rejected."""
    with pytest.raises(ValidationError, match="URL not allowed for stitching"):
        resolve_clip_url(url, ORIGIN, TRUSTED)


@pytest.mark.parametrize("url", [None, "", "   "])
def test_missing_url_rejected(url):
    with pytest.raises(ValidationError, match="Missing clip url"):
        resolve_clip_url(url, ORIGIN, TRUSTED)


def test_resolve_clip_urls_preserves_order():
    urls = resolve_clip_urls(["/b.mp4", "/a.mp4", "/c.mp4"], ORIGIN, TRUSTED)
    assert urls == [
        "https://app.example.com/b.mp4",
        "https://app.example.com/a.mp4",
        "https://app.example.com/c.mp4",
    ]


def test_resolve_clip_urls_fails_on_first_bad_url():
    with pytest.raises(ValidationError, match="evil"):
        resolve_clip_urls(["/a.mp4", "https://evil.example.net/b.mp4"], ORIGIN, TRUSTED)


@pytest.mark.parametrize("title,expected", [
    ("My Film", "My_Film"),
    ("../../etc/passwd", ".._.._etc_passwd"),
    ('Quote"Break\r\nHeader', "Quote_Break_Header"),
    ("café & crème", "caf_cr_me"),
    (None, "film"),
    ("", "film"),
    ("   ", "film"),
])
def test_sanitize_filename(title, expected):
    """Test download filename sanitizing."""
    assert sanitize_filename(title) == expected


def test_sanitize_filename_caps_length():
    assert len(sanitize_filename("a" * 500)) == 120
