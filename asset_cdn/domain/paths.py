from __future__ import annotations

import posixpath
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

from .mime import SUPPORTED_EXTENSIONS

__all__ = [
    "AssetRequest",
    "Rejection",
    "check_asset_path",
    "validate_asset_path",
    "parse_asset_request",
    "split_extension",
]

# C0 and C1 control characters plus the characters reserved on common filesystems.
_FORBIDDEN_RE = re.compile(r'[\x00-\x1f\x7f-\x9f<>:"|?*]')


class Rejection(str, Enum):
    """Why a raw request path was refused."""

    empty = "empty"
    traversal = "traversal"
    absolute = "absolute"
    invalid_characters = "invalid_characters"
    missing_extension = "missing_extension"
    unsupported_extension = "unsupported_extension"
    missing_category = "missing_category"


class AssetRequest(BaseModel):
    """A validated `category/.../filename.ext` asset path."""

    model_config = ConfigDict(frozen=True)

    path: str  # normalized, relative, no ".." segments
    extension: str  # lowercase, with leading dot
    folder: str  # first segment (asset category)
    filename: str  # last segment


def split_extension(filename: str) -> str:
    """Return the lowercased extension (with dot) of a filename, or ""."""
    _, ext = posixpath.splitext(filename)
    return ext.lower()


def _trim(raw: str) -> str:
    p = raw.strip()
    if p.startswith("/"):
        p = p[1:]
    return p


def check_asset_path(raw: str) -> AssetRequest | Rejection:
    """Validate an untrusted request path without touching the filesystem.

    Returns the parsed `AssetRequest` on success, or the `Rejection` describing
    the first check that failed. Never raises for bad input.
    """
    if not isinstance(raw, str):
        return Rejection.empty

    p = _trim(raw)
    if not p:
        return Rejection.empty
    # normpath would drop a trailing separator; the last segment is empty here.
    if p.endswith("/"):
        return Rejection.missing_extension
    p = posixpath.normpath(p)

    # normpath is not trusted on its own: re-check what it produced.
    segments = p.split("/")
    if ".." in segments:
        return Rejection.traversal
    if p.startswith("/"):
        return Rejection.absolute

    if _FORBIDDEN_RE.search(p):
        return Rejection.invalid_characters

    filename = segments[-1]
    ext = split_extension(filename)
    if not ext:
        return Rejection.missing_extension
    if ext not in SUPPORTED_EXTENSIONS:
        return Rejection.unsupported_extension

    if len(segments) < 2:
        return Rejection.missing_category

    return AssetRequest(path=p, extension=ext, folder=segments[0], filename=filename)


def validate_asset_path(raw: str) -> bool:
    """Return True when `raw` names a servable `category/filename.ext` asset."""
    return isinstance(check_asset_path(raw), AssetRequest)


def parse_asset_request(raw: str) -> AssetRequest | None:
    """Return the parsed asset request, or None if the path is invalid."""
    result = check_asset_path(raw)
    return result if isinstance(result, AssetRequest) else None
