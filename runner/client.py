from __future__ import annotations

import asyncio
import time

import httpx

from asset_cdn.domain.headers import CACHE_IMMUTABLE
from asset_cdn.domain.mime import get_mime_type
from asset_cdn.domain.paths import split_extension
from asset_cdn.logging_conf import get_logger
from runner.types import AssetCheck, AssetIndexError, RejectionCheckError, SmokeError

logger = get_logger("runner.client")

# Header names compared between GET and HEAD.
_PARITY_HEADERS = (
    "content-type",
    "content-length",
    "cache-control",
    "etag",
    "access-control-allow-origin",
)

REJECTED_PATHS = (
    "/%2e%2e/%2e%2e/etc/passwd",
    "/logos/readme.txt",
    "/long_dark.png",
)


async def wait_for_health(base_url: str, timeout_s: float = 20.0) -> None:
    """Ping /health until it returns ok or raise after a timeout."""
    deadline = time.monotonic() + timeout_s
    async with httpx.AsyncClient(base_url=base_url, timeout=5.0) as client:
        while time.monotonic() < deadline:
            try:
                r = await client.get("/health")
                if r.status_code == 200 and r.json().get("ok") is True:
                    logger.info("health.ok", extra={"event": "health_ok"})
                    return
            except httpx.HTTPError:
                pass
            await asyncio.sleep(0.25)
    raise SmokeError("Health check did not pass within timeout")


async def fetch_index(base_url: str, *, retries: int = 3) -> list[str]:
    """Return every asset path listed by the server, as `/category/file.ext`.

    - Retries transient failures up to `retries` times
    """
    last_err: Exception | None = None
    for attempt in range(retries):
        try:
            async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
                r = await client.get("/")
                r.raise_for_status()
                categories: dict[str, list[str]] = r.json()["categories"]
                paths = [
                    f"/{folder}/{name}"
                    for folder, names in sorted(categories.items())
                    for name in names
                ]
                logger.info(
                    "index.fetched",
                    extra={"event": "index_fetched", "count": len(paths), "attempt": attempt + 1},
                )
                return paths
        except (httpx.HTTPError, KeyError, ValueError) as e:  # pragma: no cover - network flakiness
            last_err = e
            logger.warning(
                "index.retry",
                extra={"event": "index_retry", "attempt": attempt + 1, "error": str(e)},
            )
    raise AssetIndexError(str(last_err) if last_err else "fetch_index failed")


async def check_asset(client: httpx.AsyncClient, path: str) -> AssetCheck:
    """Exercise one asset: plain GET, conditional GET, mismatched ETag, HEAD.

    Every failed expectation is recorded rather than raised so the summary can
    report all of them at once.
    """
    failures: list[str] = []
    start = time.perf_counter()

    r = await client.get(path)
    etag = r.headers.get("etag")
    if r.status_code != 200:
        failures.append(f"GET returned {r.status_code}")
    else:
        expected_type = get_mime_type(split_extension(path))
        if r.headers.get("content-type") != expected_type:
            failures.append(f"content-type {r.headers.get('content-type')!r} != {expected_type!r}")
        if r.headers.get("cache-control") != CACHE_IMMUTABLE:
            failures.append("cache-control is not immutable")
        if r.headers.get("content-length") != str(len(r.content)):
            failures.append("content-length does not match body")
        if not etag:
            failures.append("missing ETag")

    if etag:
        cached = await client.get(path, headers={"If-None-Match": etag})
        if cached.status_code != 304 or cached.content:
            failures.append(f"conditional GET returned {cached.status_code}")
        stale = await client.get(path, headers={"If-None-Match": '"stale"'})
        if stale.status_code != 200:
            failures.append(f"mismatched ETag returned {stale.status_code}")

    head = await client.head(path)
    if head.status_code != r.status_code:
        failures.append(f"HEAD returned {head.status_code}, GET {r.status_code}")
    for name in _PARITY_HEADERS:
        if head.headers.get(name) != r.headers.get(name):
            failures.append(f"HEAD/GET differ on {name}")
    if head.content:
        failures.append("HEAD returned a body")

    elapsed_ms = (time.perf_counter() - start) * 1000.0
    check = AssetCheck(
        path=path,
        ok=not failures,
        elapsed_ms=elapsed_ms,
        etag=etag,
        failures=failures,
    )
    if failures:
        logger.warning(
            "asset.check_failed",
            extra={"event": "asset_check_failed", "path": path, "failures": failures},
        )
    return check


async def check_all(base_url: str, paths: list[str], *, concurrency: int = 8) -> list[AssetCheck]:
    """Check assets concurrently, bounded by `concurrency`."""
    sem = asyncio.Semaphore(max(1, concurrency))

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:

        async def _bounded(p: str) -> AssetCheck:
            async with sem:
                try:
                    return await check_asset(client, p)
                except httpx.HTTPError as e:
                    return AssetCheck(path=p, ok=False, elapsed_ms=0.0, failures=[str(e)])

        return list(await asyncio.gather(*(_bounded(p) for p in paths)))


async def check_rejections(base_url: str) -> None:
    """Send requests the server must refuse; raise if any of them is served."""
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        for path in REJECTED_PATHS:
            r = await client.get(path)
            if r.status_code != 400:
                raise RejectionCheckError(f"{path} returned {r.status_code}, expected 400")
        r = await client.options("/anything")
        if r.status_code != 200 or r.content:
            raise RejectionCheckError(f"OPTIONS returned {r.status_code}")
        for method in ("POST", "PROPFIND"):
            r = await client.request(method, "/logos/long_dark.png")
            if r.status_code != 405 or r.headers.get("allow") != "GET, HEAD, OPTIONS":
                raise RejectionCheckError(f"{method} returned {r.status_code}, expected 405")
    logger.info("rejections.ok", extra={"event": "rejections_ok", "count": len(REJECTED_PATHS) + 3})
