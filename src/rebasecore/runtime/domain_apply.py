# src/rebasecore/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying ledger operations.
# ---------------------------------------------------------------------------

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from rebasecore.ledger.state import GLOBAL_KEYS, ROUNDING_ERROR_KEY, LedgerState
from rebasecore.runtime.apply.issuance import BurnPolicy, StrictBurnPolicy, burn, mint
from rebasecore.runtime.apply.rebase_opt import opt_in, opt_out
from rebasecore.runtime.apply.supply import DerivedSupplyChange, SupplyChangeStrategy, change_supply
from rebasecore.runtime.apply.transfer import DerivedTransferRounding, TransferRoundingStrategy, transfer
from rebasecore.runtime.errors import ErrorKind, LedgerError
from rebasecore.runtime.op_types import OP_TYPES, OpEnvelope
from rebasecore.runtime.rounding_tracker import RoundingErrorTracker

Json = Dict[str, Any]


@dataclass(frozen=True)
class OpStrategies:
    """Rounding behaviors, fixed when the ledger is built."""

    supply_change: SupplyChangeStrategy = field(default_factory=DerivedSupplyChange)
    transfer_rounding: TransferRoundingStrategy = field(default_factory=DerivedTransferRounding)
    burn_policy: BurnPolicy = field(default_factory=StrictBurnPolicy)

    def names(self) -> Dict[str, str]:
        return {
            "supply_change": getattr(self.supply_change, "name", type(self.supply_change).__name__),
            "transfer_rounding": getattr(self.transfer_rounding, "name", type(self.transfer_rounding).__name__),
            "burn_policy": getattr(self.burn_policy, "name", type(self.burn_policy).__name__),
        }


_DEFAULT_STRATEGIES = OpStrategies()
_DEFAULT_TRACKER = RoundingErrorTracker()


def apply_op(
    state: LedgerState,
    op: Any,
    *,
    strategies: Optional[OpStrategies] = None,
    tracker: Optional[RoundingErrorTracker] = None,
) -> Json:
    """Route one operation to its transition. Mutates state in place (not atomic)."""

    env = OpEnvelope.from_json(op)
    strat = strategies or _DEFAULT_STRATEGIES
    trk = tracker or _DEFAULT_TRACKER
    p = env.payload
    t = env.op_type

    if t not in OP_TYPES:
        raise LedgerError(ErrorKind.UNKNOWN_OPERATION, "op_type_not_supported", {"op_type": t})

    if t == "MINT":
        return trk.track(state, t, env.accounts(), lambda: mint(state, p.get("account"), p.get("amount")))

    if t == "BURN":
        return trk.track(
            state,
            t,
            env.accounts(),
            lambda: burn(state, p.get("account"), p.get("amount"), policy=strat.burn_policy),
        )

    if t == "TRANSFER":
        return trk.track(
            state,
            t,
            env.accounts(),
            lambda: transfer(state, p.get("from"), p.get("to"), p.get("amount"), strategy=strat.transfer_rounding),
        )

    if t == "OPT_IN":
        return opt_in(state, p.get("account"))

    if t == "OPT_OUT":
        return opt_out(state, p.get("account"))

    return change_supply(state, p.get("total_supply"), strategy=strat.supply_change)


def _snapshot(state: LedgerState, env: OpEnvelope) -> Json:
    # Only the globals and the named accounts can change; copying just those
    # keeps the rollback cost independent of the number of accounts.
    accounts = state.accounts
    snap: Json = {
        "globals": {k: state.get(k) for k in GLOBAL_KEYS if k in state},
        "rounding_error": state.get(ROUNDING_ERROR_KEY),
        "accounts": {aid: copy.deepcopy(accounts.get(aid)) for aid in env.accounts()},
    }
    return snap


def _restore(state: LedgerState, snap: Json) -> None:
    for k, v in snap["globals"].items():
        state[k] = v
    if snap["rounding_error"] is not None:
        state[ROUNDING_ERROR_KEY] = snap["rounding_error"]

    accounts = state.accounts
    for aid, acct in snap["accounts"].items():
        if acct is None:
            accounts.pop(aid, None)
        else:
            accounts[aid] = acct


def apply_op_atomic(
    state: LedgerState,
    op: Any,
    *,
    strategies: Optional[OpStrategies] = None,
    tracker: Optional[RoundingErrorTracker] = None,
) -> Json:
    """Apply an operation with fail-atomic semantics.

    On success state is updated as if apply_op() ran directly. On any
    exception every write the operation made is rolled back before the
    exception propagates.
    """

    env = OpEnvelope.from_json(op)
    snap = _snapshot(state, env)
    try:
        return apply_op(state, env, strategies=strategies, tracker=tracker)
    except Exception:
        _restore(state, snap)
        raise


__all__ = ["OpStrategies", "apply_op", "apply_op_atomic"]
