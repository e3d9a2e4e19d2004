"""In-process ledger metrics.

Counters are keyed by operation outcome (ops_applied_<op>, ops_rejected_<code>);
gauges mirror the supply aggregates after the last applied operation. Both
live in module state behind one lock, so any number of ledgers in a process
share them.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from rebasecore.env import env_flag

_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}


def metrics_enabled() -> bool:
    return env_flag("REBASECORE_METRICS_ENABLED", False)


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = _counters.get(n, 0) + int(value)


def set_gauge(name: str, value: int) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _gauges[n] = int(value)


def record_applied(op_type: str) -> None:
    inc_counter(f"ops_applied_{op_type.lower()}")


def record_rejected(code: str) -> None:
    inc_counter(f"ops_rejected_{code}")


def record_supply(*, total_supply: int, rebasing_credits_per_token: int, rounding_error: Optional[int]) -> None:
    with _lock:
        _gauges["total_supply"] = int(total_supply)
        _gauges["rebasing_credits_per_token"] = int(rebasing_credits_per_token)
        if rounding_error is not None:
            _gauges["rounding_error"] = int(rounding_error)


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    with _lock:
        return {"counters": dict(_counters), "gauges": dict(_gauges)}


def format_prometheus(prefix: str = "rebasecore_") -> str:
    """Prometheus text exposition (counters, then gauges, each sorted by name)."""
    pre = str(prefix or "").strip() or "rebasecore_"
    snap = snapshot()
    lines: list[str] = []

    for kind, values in (("counter", snap["counters"]), ("gauge", snap["gauges"])):
        for k in sorted(values):
            lines.append(f"# TYPE {pre}{k} {kind}")
            lines.append(f"{pre}{k} {values[k]}")

    return "\n".join(lines) + "\n" if lines else ""


__all__ = [
    "format_prometheus",
    "inc_counter",
    "metrics_enabled",
    "record_applied",
    "record_rejected",
    "record_supply",
    "reset",
    "set_gauge",
    "snapshot",
]
