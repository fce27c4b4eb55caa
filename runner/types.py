from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AssetCheck:
    """Outcome of the GET / conditional GET / HEAD checks for one asset."""

    path: str
    ok: bool
    elapsed_ms: float
    etag: str | None = None
    failures: list[str] = field(default_factory=list)


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed (e.g., health never ready)."""


class AssetIndexError(SmokeError):
    """Raised when the asset index cannot be fetched after retries."""


class RejectionCheckError(SmokeError):
    """Raised when the server accepts a path it must reject."""
