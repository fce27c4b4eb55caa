from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from asset_cdn.main import create_app

# 2024-01-02T03:04:05.678Z
MTIME_NS = 1_704_164_645_678_000_000
MTIME_MS = MTIME_NS // 1_000_000


def write_asset(root: Path, rel: str, data: bytes, mtime_ns: int = MTIME_NS) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    root = tmp_path / "static"
    root.mkdir()
    write_asset(root, "logos/long_dark.png", b"\x89PNG" + b"x" * 12341)
    write_asset(root, "logos/long_light.svg", b"<svg/>")
    write_asset(root, "icons/favicon.ico", b"\x00\x00\x01\x00")
    write_asset(root, "logos/readme.txt", b"not an image")
    return root


@pytest.fixture
def client(static_dir: Path) -> TestClient:
    return TestClient(create_app(static_dir))
