from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the smoke runner."""
    parser = argparse.ArgumentParser(description="Asset CDN smoke runner")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--timeout", type=float, default=20.0, help="health wait, seconds")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=8,
        help="maximum assets checked at once",
    )
    parser.add_argument(
        "--min-assets",
        type=int,
        default=1,
        help="fail if the index lists fewer assets than this",
    )
    return parser.parse_args(argv)
