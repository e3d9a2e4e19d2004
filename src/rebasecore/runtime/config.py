# src/rebasecore/runtime/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from rebasecore.env import parse_flag
from rebasecore.ledger.constants import DEFAULT_CREDITS_PER_TOKEN, UINT256_MAX
from rebasecore.runtime.apply.issuance import BURN_POLICIES
from rebasecore.runtime.apply.supply import SUPPLY_CHANGE_STRATEGIES
from rebasecore.runtime.apply.transfer import TRANSFER_ROUNDING_STRATEGIES

Json = Dict[str, Any]

ENV_PREFIX = "REBASECORE_"


def _as_int(v: Any, default: int) -> int:
    if v is None:
        return int(default)
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s.strip() if s.strip() else str(default)


@dataclass(frozen=True)
class LedgerConfig:
    supply_change: str  # "derived" | "nominal"
    transfer_rounding: str  # "derived" | "independent"
    burn_policy: str  # "strict" | "naive"

    track_rounding_errors: bool
    initial_credits_per_token: int

    log_level: str
    metrics_enabled: bool


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_ledger_config(cfg: LedgerConfig) -> None:
    """Fail-fast validation: an unknown strategy name must not silently fall back."""

    if cfg.supply_change not in SUPPLY_CHANGE_STRATEGIES:
        raise ValueError(f"supply_change must be one of {sorted(SUPPLY_CHANGE_STRATEGIES)}; got: {cfg.supply_change!r}")

    if cfg.transfer_rounding not in TRANSFER_ROUNDING_STRATEGIES:
        raise ValueError(
            f"transfer_rounding must be one of {sorted(TRANSFER_ROUNDING_STRATEGIES)}; got: {cfg.transfer_rounding!r}"
        )

    if cfg.burn_policy not in BURN_POLICIES:
        raise ValueError(f"burn_policy must be one of {sorted(BURN_POLICIES)}; got: {cfg.burn_policy!r}")

    if int(cfg.initial_credits_per_token) <= 0 or int(cfg.initial_credits_per_token) > UINT256_MAX:
        raise ValueError(f"initial_credits_per_token must be in 1..UINT256_MAX; got: {cfg.initial_credits_per_token}")

    if str(cfg.log_level).upper() not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}; got: {cfg.log_level!r}")


def default_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        supply_change="derived",
        transfer_rounding="derived",
        burn_policy="strict",
        track_rounding_errors=False,
        initial_credits_per_token=DEFAULT_CREDITS_PER_TOKEN,
        log_level="INFO",
        metrics_enabled=False,
    )


def merge_config(base: LedgerConfig, raw: Mapping[str, Any]) -> LedgerConfig:
    return LedgerConfig(
        supply_change=_as_str(raw.get("supply_change"), base.supply_change).lower(),
        transfer_rounding=_as_str(raw.get("transfer_rounding"), base.transfer_rounding).lower(),
        burn_policy=_as_str(raw.get("burn_policy"), base.burn_policy).lower(),
        track_rounding_errors=parse_flag(raw.get("track_rounding_errors"), base.track_rounding_errors),
        initial_credits_per_token=_as_int(raw.get("initial_credits_per_token"), base.initial_credits_per_token),
        log_level=_as_str(raw.get("log_level"), base.log_level).upper(),
        metrics_enabled=parse_flag(raw.get("metrics_enabled"), base.metrics_enabled),
    )


def read_config_mapping(path: str) -> Json:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = yaml.safe_load(text)
    else:
        raw = json.loads(text)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("ledger config must be a mapping (JSON object / YAML mapping)")
    return raw


def read_ledger_config_file(path: str) -> LedgerConfig:
    cfg = merge_config(default_ledger_config(), read_config_mapping(path))
    validate_ledger_config(cfg)
    return cfg


def _env_overrides(environ: Mapping[str, str]) -> Json:
    out: Json = {}
    for name in LedgerConfig.__dataclass_fields__:
        v = environ.get(ENV_PREFIX + name.upper())
        if v is not None and v.strip():
            out[name] = v
    return out


def load_ledger_config(
    *,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> LedgerConfig:
    """defaults < config file < extra < REBASECORE_* environment variables."""

    env = os.environ if environ is None else environ
    cfg = default_ledger_config()

    p = config_path or env.get(ENV_PREFIX + "CONFIG_PATH")
    if p:
        cfg = merge_config(cfg, read_config_mapping(p))

    if extra:
        cfg = merge_config(cfg, extra)

    cfg = merge_config(cfg, _env_overrides(env))
    validate_ledger_config(cfg)
    return cfg


def with_overrides(cfg: LedgerConfig, **changes: Any) -> LedgerConfig:
    out = replace(cfg, **changes)
    validate_ledger_config(out)
    return out


__all__ = [
    "LedgerConfig",
    "default_ledger_config",
    "load_ledger_config",
    "merge_config",
    "read_ledger_config_file",
    "validate_ledger_config",
    "with_overrides",
]
