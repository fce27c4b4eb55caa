from __future__ import annotations

from pydantic import BaseModel


class AssetIndexResponse(BaseModel):
    """Servable assets grouped by category folder."""
    categories: dict[str, list[str]]
    count: int


class HealthResponse(BaseModel):
    """Liveness payload."""
    ok: bool = True
