# src/rebasecore/runtime/state_invariants.py
"""State shape checks and the sum-of-balances audit.

audit_state() walks every account and is O(n). Ledger operations never call
it; it exists for tests, the replay tool and operators who want to measure
how far the cached aggregates have drifted from the per-account truth.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Dict

from rebasecore.ledger.accounts import balance_of
from rebasecore.ledger.state import LedgerState
from rebasecore.runtime.rounding_tracker import reported_total_supply

Json = Dict[str, Any]


def ensure_state(st: Any) -> LedgerState:
    """Return `st` as a validated LedgerState.

    Raises:
        TypeError: if st is neither a LedgerState nor a MutableMapping
        ValueError: on schema violations
    """
    if isinstance(st, LedgerState):
        st.validate()
        return st
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")
    return LedgerState.from_json(dict(st))


def audit_state(state: LedgerState) -> Json:
    sum_balances = 0
    sum_rebasing_credits = 0
    sum_non_rebasing_balances = 0
    non_rebasing_accounts = 0

    for aid, acct in state.accounts.items():
        bal = balance_of(state, aid)
        sum_balances += bal
        if acct.get("non_rebasing"):
            non_rebasing_accounts += 1
            sum_non_rebasing_balances += bal
        else:
            sum_rebasing_credits += int(acct.get("credits", 0))

    report: Json = {
        "accounts": len(state.accounts),
        "non_rebasing_accounts": non_rebasing_accounts,
        "sum_balances": sum_balances,
        "total_supply": state.total_supply,
        "supply_drift": state.total_supply - sum_balances,
        "rebasing_credits_drift": state.rebasing_credits - sum_rebasing_credits,
        "non_rebasing_supply_drift": state.non_rebasing_supply - sum_non_rebasing_balances,
        "rebasing_credits_per_token": state.rebasing_credits_per_token,
    }
    if state.tracks_rounding:
        report["rounding_error"] = state.rounding_error
        report["reported_total_supply"] = reported_total_supply(state)
        report["reported_supply_drift"] = report["reported_total_supply"] - sum_balances
    return report


__all__ = ["audit_state", "ensure_state"]
