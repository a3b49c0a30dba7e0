"""Helper utilities.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import unquote, urlparse


def normalize_path(path: str) -> str:
    """Normalize URL path."""
    if not path:
        return "/"

    # Remove double slashes
    while "//" in path:
        path = path.replace("//", "/")

    # Ensure starts with /
    if not path.startswith("/"):
        path = "/" + path

    # Remove trailing slash (except for root)
    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return path


def strip_base_path(path: str, base_path: Optional[str] = None) -> str:
    """Remove a sub-directory mount point from the front of path."""
    if not base_path:
        return path
    base = base_path.rstrip("/")
    if base and (path == base or path.startswith(base + "/")):
        return path[len(base):] or "/"
    return path


def request_path(uri: str, base_path: Optional[str] = None) -> str:
    """Routable path from a request URI.

    Drops scheme, host, query string and fragment, decodes percent
    escapes, strips base_path and normalizes slashes. Escaped "/" and
    "%" stay escaped (%2F, %25) so they cannot split a segment; the
    matcher decodes parameter values.
    """
    raw = urlparse(uri or "/").path
    path = "/".join(decode_segment(segment) for segment in raw.split("/"))
    return normalize_path(strip_base_path(normalize_path(path), base_path))


def decode_segment(segment: str) -> str:
    """Percent-decode one path segment, keeping "%" and "/" escaped."""
    return unquote(segment).replace("%", "%25").replace("/", "%2F")


__all__ = [
    "normalize_path",
    "strip_base_path",
    "decode_segment",
    "request_path",
]
