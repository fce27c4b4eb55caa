#!/usr/bin/env python3
"""Write a small deterministic static tree for local runs and the smoke runner.

Usage: python tools/fixtures.py [target_dir]   (default: ./static)
"""
from __future__ import annotations

import base64
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_TARGET = ROOT / "static"

# 1x1 transparent PNG
_PNG_1x1 = base64.b64decode(
    b"iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAO6wZSYAAAAASUVORK5CYII="
)

# JPEG placeholder; the server never inspects content
_JPEG_1x1 = base64.b64decode(
    b"/9j/4AAQSkZJRgABAQEASABIAAD/2wBDAP//////////////////////////////////////////"
    b"////////////////////////////////////////////wgALCAABAAEBAREA/8QAFBABAAAAAAAA"
    b"AAAAAAAAAAAAAP/aAAgBAQABPxA="
)

# 1x1 lossless WebP
_WEBP_1x1 = base64.b64decode(b"UklGRhoAAABXRUJQVlA4TA0AAAAvAAAAEAcQERGIiP4HAA==")

_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="120" height="24" viewBox="0 0 120 24">'
    b'<rect width="120" height="24" rx="4" fill="#f5f5f5"/></svg>\n'
)

# ICO container wrapping the PNG above (PNG-compressed icons are valid since Vista).
_ICO = (
    b"\x00\x00\x01\x00\x01\x00"
    + b"\x01\x01\x00\x00\x01\x00\x20\x00"
    + len(_PNG_1x1).to_bytes(4, "little")
    + (6 + 16).to_bytes(4, "little")
    + _PNG_1x1
)

FILES = [
    (Path("logos") / "long_dark.png", _PNG_1x1),
    (Path("logos") / "long_light.svg", _SVG),
    (Path("icons") / "favicon.ico", _ICO),
    (Path("photos") / "header.jpg", _JPEG_1x1),
    (Path("photos") / "banner.webp", _WEBP_1x1),
]


def main(argv: list[str] | None = None) -> None:
    args = argv if argv is not None else sys.argv[1:]
    target = Path(args[0]) if args else DEFAULT_TARGET
    target.mkdir(parents=True, exist_ok=True)
    for rel, data in FILES:
        path = target / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    created = sorted(str(rel) for rel, _ in FILES if (target / rel).is_file())
    print(f"Created fixtures in {target}:")
    for c in created:
        print(" -", c)
    if len(created) != len(FILES):
        raise SystemExit(f"Expected {len(FILES)} fixtures, found {len(created)}")


if __name__ == "__main__":
    main()
