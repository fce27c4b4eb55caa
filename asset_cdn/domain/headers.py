from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from .mime import get_mime_type

__all__ = [
    "ALLOWED_METHODS",
    "ALLOWED_HEADERS",
    "CACHE_IMMUTABLE",
    "CACHE_NO_CACHE",
    "PREFLIGHT_MAX_AGE",
    "HeaderKind",
    "build_headers",
    "compute_etag",
    "get_cache_headers",
]

ALLOWED_METHODS = "GET, HEAD, OPTIONS"
ALLOWED_HEADERS = "Content-Type, If-None-Match"
CACHE_IMMUTABLE = "public, max-age=31536000, immutable"
CACHE_NO_CACHE = "no-cache"
PREFLIGHT_MAX_AGE = 86400  # one day


class HeaderKind(str, Enum):
    asset = "asset"
    error = "error"
    preflight = "preflight"
    method_not_allowed = "method_not_allowed"


def compute_etag(size: int, mtime_ns: int) -> str:
    """Return the quoted `"<size>-<mtimeMillis>"` entity tag for a file."""
    return f'"{size}-{mtime_ns // 1_000_000}"'


def build_headers(
    kind: HeaderKind,
    *,
    content_type: str | None = None,
    etag: str | None = None,
    content_length: int | None = None,
) -> Mapping[str, str]:
    """Build a fresh, read-only header set for one response.

    - `asset`: content type, long-lived immutable caching and CORS headers.
    - `error`: `no-cache` plus the wildcard origin.
    - `preflight`: the CORS preflight set with a one-day max-age.
    - `method_not_allowed`: like `error`, with an `Allow` header.

    `etag` and `content_length` are appended when given.
    """
    headers: dict[str, str] = {}
    if content_type is not None:
        headers["Content-Type"] = content_type

    if kind is HeaderKind.asset:
        headers["Cache-Control"] = CACHE_IMMUTABLE
        headers["Access-Control-Allow-Origin"] = "*"
        headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
    elif kind is HeaderKind.preflight:
        headers["Access-Control-Allow-Origin"] = "*"
        headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        headers["Access-Control-Max-Age"] = str(PREFLIGHT_MAX_AGE)
    else:
        headers["Cache-Control"] = CACHE_NO_CACHE
        headers["Access-Control-Allow-Origin"] = "*"
        if kind is HeaderKind.method_not_allowed:
            headers["Allow"] = ALLOWED_METHODS

    if etag is not None:
        headers["ETag"] = etag
    if content_length is not None:
        headers["Content-Length"] = str(content_length)
    return MappingProxyType(headers)


def get_cache_headers(file_type_or_mime: str) -> Mapping[str, str]:
    """Cache/CORS headers for a servable asset given its extension or MIME type."""
    if "/" in file_type_or_mime:
        content_type = file_type_or_mime
    else:
        content_type = get_mime_type(file_type_or_mime)
    return build_headers(HeaderKind.asset, content_type=content_type)
