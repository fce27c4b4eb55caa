#!/usr/bin/env python3
"""High-level smoke runner for a live asset server.

Steps:
- wait for server health
- fetch the asset index
- check every listed asset concurrently (GET, conditional GET, HEAD parity)
- send paths the server must reject
- emit a compact summary and exit code
"""
from __future__ import annotations

import asyncio
import sys

from asset_cdn.logging_conf import get_logger, setup_logging
from runner.cli import parse_args
from runner.client import check_all, check_rejections, fetch_index, wait_for_health
from runner.types import SmokeError
from runner.utils import summarize

setup_logging()
logger = get_logger("runner")


async def run_smoke(
    *, base_url: str, timeout_s: float = 20.0, concurrency: int = 8, min_assets: int = 1
) -> int:
    await wait_for_health(base_url, timeout_s)
    paths = await fetch_index(base_url)
    checks = await check_all(base_url, paths, concurrency=concurrency)
    summary, exit_code = summarize(checks, min_assets=min_assets)
    try:
        await check_rejections(base_url)
    except SmokeError as e:
        summary["rejection_error"] = str(e)
        exit_code = 1
    logger.info("runner.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    code = asyncio.run(
        run_smoke(
            base_url=args.base_url,
            timeout_s=args.timeout,
            concurrency=args.concurrency,
            min_assets=args.min_assets,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
