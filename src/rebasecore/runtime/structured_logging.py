# src/rebasecore/runtime/structured_logging.py
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Configure stdlib logging for JSONL output (stderr).

    - Level from the argument, else REBASECORE_LOG_LEVEL (default INFO).
    - Safe to call multiple times.
    """
    name = (level_name or os.environ.get("REBASECORE_LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    if getattr(root, "_rebasecore_configured", False):  # type: ignore[attr-defined]
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(level)
    setattr(root, "_rebasecore_configured", True)  # type: ignore[attr-defined]


def log_event(logger: logging.Logger, event: str, **fields: Any) -> None:
    """Emit a single JSONL log event."""
    payload: Json = {"ts_ms": _now_ms(), "event": str(event)}
    payload.update(fields)
    try:
        logger.info(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str))
    except (TypeError, ValueError):
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        logger.info(" ".join(parts))


__all__ = ["configure_structured_logging", "log_event"]
