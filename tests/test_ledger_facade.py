from __future__ import annotations

import json
import logging
import threading

from rebasecore import RebasingLedger, default_ledger_config, new_ledger_state
from rebasecore.ledger.constants import PRECISION
from rebasecore.runtime import metrics
from rebasecore.runtime.config import with_overrides
from rebasecore.runtime import ledger as ledger_mod


def _events(caplog) -> list:
    out = []
    for rec in caplog.records:
        if rec.name != "rebasecore.ledger":
            continue
        out.append(json.loads(rec.getMessage()))
    return out


def test_mutations_return_results_instead_of_raising() -> None:
    led = RebasingLedger()

    ok, out = led.mint("alice", 100)
    assert ok is True
    assert out["balance"] == 100

    res = led.transfer("alice", "bob", 500)
    assert res.ok is False
    assert res.code == "insufficient_balance"
    assert res.reason == "transfer_exceeds_balance"

    ok2, rej = led.burn("alice", -1)
    assert ok2 is False
    assert rej.code == "invalid_amount"

    assert led.balance_of("alice") == 100
    assert led.balance_of("bob") == 0
    assert "bob" not in led.state_json()["accounts"]


def test_reads_reflect_rebase() -> None:
    led = RebasingLedger()
    led.mint("A", 1)
    led.mint("B", 1)
    assert led.change_supply(3).ok

    assert led.credits_per_token("A") == 666666666666666666
    assert led.credits_of("A") == 1
    assert led.total_supply() == 3

    report = led.supply_report()
    assert report["total_supply"] == report["cached_total_supply"] == 3
    assert report["rebasing_credits"] == 2
    assert "rounding_error" not in report
    assert led.audit()["supply_drift"] == 1


def test_opt_out_and_in_through_facade() -> None:
    led = RebasingLedger()
    led.mint("vault", 10)
    assert led.opt_out("vault").ok
    assert led.is_non_rebasing("vault") is True

    again = led.opt_out("vault")
    assert again.code == "already_in_state"

    assert led.opt_in("vault").ok
    assert led.is_non_rebasing("vault") is False
    assert led.balance_of("vault") == 10


def test_config_selects_strategies_and_tracking() -> None:
    cfg = with_overrides(
        default_ledger_config(),
        burn_policy="naive",
        track_rounding_errors=True,
        initial_credits_per_token=PRECISION // 2,
    )
    led = RebasingLedger(config=cfg)
    assert led.strategies.names() == {"supply_change": "derived", "transfer_rounding": "derived", "burn_policy": "naive"}
    assert led.tracks_rounding is True

    led.mint("A", 100)
    assert led.burn("A", 1).ok
    assert led.rounding_error() == 1
    assert led.total_supply() == 100
    assert led.supply_report()["cached_total_supply"] == 99


def test_existing_state_gains_accumulator_when_tracking_enabled() -> None:
    st = new_ledger_state()
    cfg = with_overrides(default_ledger_config(), track_rounding_errors=True)
    led = RebasingLedger(config=cfg, state=st)
    assert led.rounding_error() == 0

    plain = RebasingLedger(state=new_ledger_state())
    assert plain.rounding_error() is None


def test_rejections_and_rebases_are_logged(caplog) -> None:
    caplog.set_level(logging.INFO, logger="rebasecore.ledger")
    led = RebasingLedger()
    led.mint("A", 2)
    led.burn("A", 5)
    led.change_supply(4)

    events = _events(caplog)
    names = [e["event"] for e in events]
    assert names == ["ledger_op_applied", "ledger_op_rejected", "ledger_supply_changed", "ledger_op_applied"]

    rejected = events[1]
    assert rejected["op_type"] == "BURN"
    assert rejected["code"] == "insufficient_balance"

    rebased = events[2]
    assert rebased["previous_credits_per_token"] == PRECISION
    assert rebased["rebasing_credits_per_token"] == PRECISION // 2
    assert rebased["total_supply"] == 4


def test_metrics_are_recorded_when_enabled() -> None:
    cfg = with_overrides(default_ledger_config(), metrics_enabled=True)
    led = RebasingLedger(config=cfg)
    led.mint("A", 5)
    led.mint("A", 5)
    led.transfer("A", "B", 50)

    snap = metrics.snapshot()
    assert snap["counters"]["ops_applied_mint"] == 2
    assert snap["counters"]["ops_rejected_insufficient_balance"] == 1
    assert snap["gauges"]["total_supply"] == 10

    text = metrics.format_prometheus()
    assert "# TYPE rebasecore_ops_applied_mint counter\n" in text
    assert "rebasecore_ops_applied_mint 2\n" in text
    assert "# TYPE rebasecore_total_supply gauge\n" in text
    assert "rebasecore_total_supply 10\n" in text


def test_metrics_stay_empty_when_disabled() -> None:
    led = RebasingLedger()
    led.mint("A", 5)
    assert metrics.snapshot()["counters"] == {}


def test_concurrent_submissions_are_serialized() -> None:
    led = RebasingLedger()
    led.mint("pool", 10_000)

    def worker(i: int) -> None:
        for _ in range(50):
            led.mint(f"w{i}", 1)
            led.transfer("pool", f"w{i}", 2)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert led.total_supply() == 10_000 + 8 * 50
    assert led.balance_of("pool") == 10_000 - 8 * 50 * 2
    for i in range(8):
        assert led.balance_of(f"w{i}") == 150

    audit = led.audit()
    assert audit["supply_drift"] == 0
    assert audit["rebasing_credits_drift"] == 0


def test_from_env_reads_config_file_and_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(ledger_mod, "configure_structured_logging", lambda level_name=None: None)
    cfg_file = tmp_path / "ledger.yaml"
    cfg_file.write_text("burn_policy: naive\ntransfer_rounding: independent\n", encoding="utf-8")
    monkeypatch.setenv("REBASECORE_CONFIG_PATH", str(cfg_file))
    monkeypatch.setenv("REBASECORE_TRANSFER_ROUNDING", "derived")

    led = RebasingLedger.from_env()
    assert led.config.burn_policy == "naive"
    assert led.config.transfer_rounding == "derived"
