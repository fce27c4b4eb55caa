from __future__ import annotations

from asset_cdn.domain.paths import split_extension
from runner.types import AssetCheck


def percentile(values: list[float], p: float) -> float:
    """Compute the p-th percentile using linear interpolation."""
    if not values:
        return 0.0
    s = sorted(values)
    k = (len(s) - 1) * p
    f = int(k)
    c = min(f + 1, len(s) - 1)
    if f == c:
        return s[f]
    d0 = s[f] * (c - k)
    d1 = s[c] * (k - f)
    return d0 + d1


def summarize(checks: list[AssetCheck], *, min_assets: int = 1) -> tuple[dict, int]:
    """Compute summary dict and an exit code from per-asset checks."""
    durations_ms = [c.elapsed_ms for c in checks]
    per_ext: dict[str, dict[str, int]] = {}
    failures_detail: list[dict] = []

    for c in checks:
        ext = split_extension(c.path)
        per_ext.setdefault(ext, {"ok": 0, "failed": 0})
        if c.ok:
            per_ext[ext]["ok"] += 1
        else:
            per_ext[ext]["failed"] += 1
            failures_detail.append({"path": c.path, "failures": c.failures})

    passed = sum(1 for c in checks if c.ok)
    summary = {
        "component": "runner",
        "event": "summary",
        "checked": len(checks),
        "passed": passed,
        "failed": len(checks) - passed,
        "timings": {
            "avg_ms": round(sum(durations_ms) / len(durations_ms), 2) if durations_ms else 0.0,
            "p95_ms": round(percentile(durations_ms, 0.95), 2),
            "max_ms": round(max(durations_ms), 2) if durations_ms else 0.0,
        },
        "per_extension": per_ext,
        "failures": failures_detail,
    }
    exit_code = 0 if (len(checks) >= min_assets and passed == len(checks)) else 1
    return summary, exit_code
