from __future__ import annotations

import os
import stat
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from ..domain.headers import HeaderKind, build_headers, compute_etag
from ..domain.mime import get_mime_type
from ..domain.paths import AssetRequest, check_asset_path
from ..logging_conf import get_logger

logger = get_logger("service.assets")

DEFAULT_STATIC_DIR = "./static"
CHUNK_SIZE = 64 * 1024


class AssetIOError(RuntimeError):
    """Unexpected filesystem failure while serving an asset.

    The message is meant for server logs only; the HTTP layer maps this to a
    generic 500.
    """

    code: str = "io_error"


def get_static_dir_from_env() -> Path:
    """Return STATIC_DIR from environment, defaulting to ./static."""
    return Path(os.getenv("STATIC_DIR", DEFAULT_STATIC_DIR))


# ------------------------
# Response model
# ------------------------
class FileStream:
    """Iterate over at most `size` bytes of an open file, then close it."""

    def __init__(self, handle: BinaryIO, size: int, chunk_size: int = CHUNK_SIZE):
        self._handle = handle
        self._remaining = size
        self._chunk_size = chunk_size

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def __iter__(self) -> Iterator[bytes]:
        try:
            while self._remaining > 0:
                chunk = self._handle.read(min(self._chunk_size, self._remaining))
                if not chunk:
                    break
                self._remaining -= len(chunk)
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self._handle.close()


@dataclass
class AssetResponse:
    """Transport-neutral outcome of serving one request."""

    status_code: int
    headers: Mapping[str, str]
    body: bytes | FileStream = b""
    reason: str | None = None

    @property
    def is_stream(self) -> bool:
        return isinstance(self.body, FileStream)

    def close(self) -> None:
        """Release the file handle, if any. Safe to call more than once."""
        if isinstance(self.body, FileStream):
            self.body.close()


def _error(status_code: int, message: str, reason: str | None = None) -> AssetResponse:
    body = f"{message}\n".encode()
    headers = build_headers(
        HeaderKind.error,
        content_type="text/plain; charset=utf-8",
        content_length=len(body),
    )
    return AssetResponse(status_code=status_code, headers=headers, body=body, reason=reason)


def bad_request(reason: str) -> AssetResponse:
    return _error(400, "Bad Request", reason)


def forbidden() -> AssetResponse:
    return _error(403, "Forbidden", "outside_root")


def not_found(reason: str = "not_found") -> AssetResponse:
    return _error(404, "Not Found", reason)


def method_not_allowed() -> AssetResponse:
    body = b"Method Not Allowed\n"
    headers = build_headers(
        HeaderKind.method_not_allowed,
        content_type="text/plain; charset=utf-8",
        content_length=len(body),
    )
    return AssetResponse(status_code=405, headers=headers, body=body)


def preflight() -> AssetResponse:
    """CORS preflight answer for any path."""
    return AssetResponse(status_code=200, headers=build_headers(HeaderKind.preflight))


def internal_error() -> AssetResponse:
    return _error(500, "Internal Server Error", AssetIOError.code)


# ------------------------
# Use-cases
# ------------------------

def _resolve_target(asset: AssetRequest, static_dir: str | os.PathLike[str]) -> Path | None:
    """Canonicalize the asset path; None if it lands outside the static root."""
    try:
        root = Path(static_dir).resolve()
        target = (root / asset.path).resolve()
    except (OSError, RuntimeError) as e:  # symlink loops, unreadable parents
        raise AssetIOError(f"cannot resolve {asset.path!r}: {e}") from e
    if target == root or not target.is_relative_to(root):
        return None
    return target


def serve_asset(
    raw_path: str,
    static_dir: str | os.PathLike[str],
    if_none_match: str | None = None,
) -> AssetResponse:
    """Serve one asset below `static_dir`.

    Flow: validate -> contain -> stat -> 304 on exact ETag match -> 200 stream.
    Rejections become 400/403/404 responses; any other filesystem failure is
    raised as `AssetIOError`. A 200 response owns an open file handle that is
    released when its body is exhausted or `close()` is called.
    """
    result = check_asset_path(raw_path)
    if not isinstance(result, AssetRequest):
        logger.info(
            "asset.rejected",
            extra={"event": "asset_rejected", "reason": result.value},
        )
        return bad_request(result.value)

    target = _resolve_target(result, static_dir)
    if target is None:
        logger.warning(
            "asset.forbidden",
            extra={"event": "asset_forbidden", "asset_path": result.path},
        )
        return forbidden()

    try:
        st = os.stat(target)
    except (FileNotFoundError, NotADirectoryError):
        logger.debug("asset.missing", extra={"event": "asset_missing", "asset_path": result.path})
        return not_found()
    except OSError as e:
        raise AssetIOError(f"stat failed for {target}: {e}") from e

    if not stat.S_ISREG(st.st_mode):
        logger.debug("asset.not_file", extra={"event": "asset_not_file", "asset_path": result.path})
        return not_found("not_a_file")

    etag = compute_etag(st.st_size, st.st_mtime_ns)
    content_type = get_mime_type(result.extension)

    if if_none_match is not None and if_none_match == etag:
        headers = build_headers(HeaderKind.asset, content_type=content_type, etag=etag)
        return AssetResponse(status_code=304, headers=headers)

    try:
        handle = open(target, "rb")
    except FileNotFoundError:
        # Removed between stat and open.
        return not_found()
    except OSError as e:
        raise AssetIOError(f"open failed for {target}: {e}") from e

    headers = build_headers(
        HeaderKind.asset,
        content_type=content_type,
        etag=etag,
        content_length=st.st_size,
    )
    return AssetResponse(status_code=200, headers=headers, body=FileStream(handle, st.st_size))


def head_asset(
    raw_path: str,
    static_dir: str | os.PathLike[str],
    if_none_match: str | None = None,
) -> AssetResponse:
    """Same status and headers as `serve_asset`, with the body dropped."""
    response = serve_asset(raw_path, static_dir, if_none_match)
    response.close()
    return AssetResponse(
        status_code=response.status_code,
        headers=response.headers,
        reason=response.reason,
    )


def list_assets(static_dir: str | os.PathLike[str]) -> dict[str, list[str]]:
    """Return servable assets grouped by category folder.

    Paths are relative to their category and sorted. Files that would fail
    validation, or that resolve outside the root, are left out. Missing roots
    yield an empty index.
    """
    root = Path(static_dir).resolve()
    if not root.is_dir():
        return {}

    index: dict[str, list[str]] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        asset = check_asset_path(rel)
        if not isinstance(asset, AssetRequest):
            continue
        try:
            if not path.is_file() or not path.resolve().is_relative_to(root):
                continue
        except (OSError, RuntimeError):
            logger.debug("assets.skip", extra={"event": "assets_skip", "asset_path": rel})
            continue
        index.setdefault(asset.folder, []).append(rel[len(asset.folder) + 1 :])

    logger.debug(
        "assets.list",
        extra={"event": "assets_list", "categories": len(index)},
    )
    return index
