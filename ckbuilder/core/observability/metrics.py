from __future__ import annotations

from collections import Counter
from typing import Dict, Optional

from prometheus_client import Counter as PromCounter

# Requests counters (HTTP-level)
_REQUESTS = Counter()

# Named counters (builds, sprites, ...)
_NAMED = Counter()

_PROM_REQUESTS = PromCounter(
    "ckbuilder_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

_PROM_BUILDS = PromCounter(
    "ckbuilder_builds_total",
    "Assembly runs by kind and outcome",
    ["kind", "outcome"],
)

_PROM_ICONS_REJECTED = PromCounter(
    "ckbuilder_sprite_icons_rejected_total",
    "Icons left out of a sprite because they exceed the size limit",
)


def reset_metrics() -> None:
    """
    Test helper: clears all counters to avoid cross-test leakage.
    """
    _REQUESTS.clear()
    _NAMED.clear()


def inc_http(method: str, path: str, status: Optional[int] = None) -> None:
    m = (method or "UNKNOWN").upper()
    p = path or "/"
    s = status if status is not None else "unknown"

    _REQUESTS["requests_total"] += 1
    _REQUESTS[f"requests_{m}"] += 1
    _REQUESTS[f"path_{p}|{s}"] += 1
    _PROM_REQUESTS.labels(method=m, path=p, status=str(s)).inc()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def inc_build(kind: str, outcome: str) -> None:
    inc_named(f"builds_{kind}_{outcome}")
    _PROM_BUILDS.labels(kind=kind, outcome=outcome).inc()


def inc_icons_rejected() -> None:
    inc_named("sprite_icons_rejected")
    _PROM_ICONS_REJECTED.inc()


def snapshot_requests() -> Dict[str, int]:
    return dict(_REQUESTS)


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)
