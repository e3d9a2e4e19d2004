# src/rebasecore/tools/replay.py
"""Replay a recorded operation sequence against a fresh ledger.

Usage:
  python -m rebasecore replay ops.yaml
  python -m rebasecore replay ops.json --config ledger.yaml --audit-each

Prints a JSON report (per-op results + final audit) to stdout.
Exit codes: 0 all ops applied, 1 at least one op rejected, 2 bad input.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import ValidationError

from rebasecore.env import load_dotenv_if_present
from rebasecore.runtime.config import LedgerConfig, load_ledger_config
from rebasecore.runtime.ledger import RebasingLedger
from rebasecore.runtime.op_types import OpEnvelope
from rebasecore.runtime.structured_logging import configure_structured_logging, log_event
from rebasecore.tools.schemas import ReplayFile

Json = Dict[str, Any]

log = logging.getLogger("rebasecore.replay")


def load_replay_file(path: str) -> ReplayFile:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    raw = yaml.safe_load(text) if p.suffix.lower() in {".yaml", ".yml"} else json.loads(text)
    return ReplayFile.from_raw(raw)


def replay_ops(ledger: RebasingLedger, ops: Sequence[OpEnvelope], *, audit_each: bool = False) -> Json:
    results: List[Json] = []
    rejected = 0

    for i, env in enumerate(ops):
        res = ledger.submit(env)
        row: Json = {"index": i, "op_type": env.op_type, "ok": res.ok}
        if res.ok:
            row["value"] = res.value
        else:
            rejected += 1
            row.update({"code": res.code, "reason": res.reason, "details": res.details})
        if audit_each:
            row["audit"] = ledger.audit()
        results.append(row)

    return {
        "ops": len(ops),
        "rejected": rejected,
        "strategies": ledger.strategies.names(),
        "results": results,
        "supply": ledger.supply_report(),
        "audit": ledger.audit(),
    }


def _build_config(file_config: Json, config_path: Optional[str]) -> LedgerConfig:
    # config embedded in the ops file overrides --config; env still wins
    return load_ledger_config(config_path=config_path, extra=file_config)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="rebasecore", description="Rebasing ledger tooling")
    sub = ap.add_subparsers(dest="command", required=True)

    rp = sub.add_parser("replay", help="replay an operation file and report supply drift")
    rp.add_argument("ops_file", help="JSON or YAML operation list")
    rp.add_argument("--config", default=None, help="ledger config file (JSON/YAML)")
    rp.add_argument("--audit-each", action="store_true", help="audit balances after every op")

    args = ap.parse_args(argv)

    load_dotenv_if_present()
    try:
        replay_file = load_replay_file(args.ops_file)
        cfg = _build_config(replay_file.config, args.config)
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as e:
        print(json.dumps({"error": "bad_input", "detail": str(e)}), file=sys.stderr)
        return 2

    configure_structured_logging(cfg.log_level)
    ledger = RebasingLedger(config=cfg)
    ops = [rec.to_envelope() for rec in replay_file.ops]

    report = replay_ops(ledger, ops, audit_each=args.audit_each)
    log_event(log, "replay_finished", ops=report["ops"], rejected=report["rejected"])
    print(json.dumps(report, sort_keys=True, indent=2))
    return 1 if report["rejected"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
