# src/rebasecore/runtime/rounding_tracker.py
"""Optional rounding-error accumulator.

Wraps MINT / BURN / TRANSFER: balances of the named accounts and the cached
total supply are read before and after the operation, and the difference

    drift = (sum of balance changes) - (total supply change)

is added to state["rounding_error"]. A positive accumulator means balances
hold more than the cached supply says; the reported supply is corrected by
adding it.

CHANGE_SUPPLY passes through untouched. Its drift is spread over every
rebasing account, and measuring it would require summing all balances.
OPT_IN / OPT_OUT already settle their own difference against total supply.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable

from rebasecore.ledger.accounts import balance_of
from rebasecore.ledger.state import LedgerState

Json = Dict[str, Any]

TRACKED_OPS = frozenset({"MINT", "BURN", "TRANSFER"})


class RoundingErrorTracker:
    def track(self, state: LedgerState, op_type: str, accounts: Iterable[str], apply: Callable[[], Json]) -> Json:
        if not state.tracks_rounding or op_type not in TRACKED_OPS:
            return apply()

        # dict.fromkeys keeps order and drops a repeated (self-transfer) account
        touched = list(dict.fromkeys(accounts))
        before = {aid: balance_of(state, aid) for aid in touched}
        supply_before = state.total_supply

        result = apply()

        balance_delta = sum(balance_of(state, aid) - bal for aid, bal in before.items())
        supply_delta = state.total_supply - supply_before
        drift = balance_delta - supply_delta

        state.rounding_error = state.rounding_error + drift
        if isinstance(result, dict):
            result["rounding_error_delta"] = drift
        return result


def reported_total_supply(state: LedgerState) -> int:
    """Cached total supply, corrected by the accumulator when tracking is on.

    Floors at zero rather than reporting a negative supply.
    """
    if not state.tracks_rounding:
        return state.total_supply
    return max(0, state.total_supply + state.rounding_error)


__all__ = ["RoundingErrorTracker", "TRACKED_OPS", "reported_total_supply"]
