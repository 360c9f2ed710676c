"""Utility helpers for URL and path handling."""

from __future__ import annotations

import posixpath
from urllib.parse import urlparse


class InvalidImageURL(ValueError):
    """Raised when an image URL does not yield a usable local file name."""


def filename_from_url(url: str) -> str:
    """Return the last path segment of an absolute URL."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidImageURL(f"Not an absolute URL: {url!r}")
    name = posixpath.basename(parsed.path)
    if not name or name in (".", ".."):
        raise InvalidImageURL(f"URL has no file name in its path: {url!r}")
    return name
