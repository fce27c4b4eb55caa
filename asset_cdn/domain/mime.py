from __future__ import annotations

from types import MappingProxyType

__all__ = [
    "DEFAULT_MIME_TYPE",
    "MIME_TYPES",
    "SUPPORTED_EXTENSIONS",
    "get_mime_type",
]

DEFAULT_MIME_TYPE = "application/octet-stream"

# Extension -> canonical MIME type. This table is also the serving allow-list.
MIME_TYPES = MappingProxyType(
    {
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".webp": "image/webp",
        ".svg": "image/svg+xml",
        ".ico": "image/x-icon",
    }
)

SUPPORTED_EXTENSIONS = frozenset(MIME_TYPES)


def get_mime_type(extension: str) -> str:
    """Look up the MIME type for an extension; unknown values fall back to octet-stream."""
    if not isinstance(extension, str) or not extension:
        return DEFAULT_MIME_TYPE
    ext = extension.strip().lower()
    if not ext.startswith("."):
        ext = f".{ext}"
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)
