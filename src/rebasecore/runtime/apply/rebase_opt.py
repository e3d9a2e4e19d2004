# src/rebasecore/runtime/apply/rebase_opt.py
"""Opt-in / opt-out: Rebasing <-> NonRebasing per account.

opt_out freezes the account at the current global multiplier. opt_in
re-expresses its credits under the global multiplier again; when the two
multipliers differ the balance can move by a minimal unit, and total
supply follows it so the sum-of-balances invariant holds locally. That
adjustment means opt_in writes total_supply, which is otherwise owned by
the supply-change caller.
"""

from __future__ import annotations

from typing import Any, Dict

from rebasecore.ledger.accounts import (
    balance_of,
    credits_of,
    get_account,
    is_non_rebasing,
    require_account_id,
    set_credits,
    set_non_rebasing,
)
from rebasecore.ledger.fixed_point import checked_add, checked_sub, div_precisely, mul_truncate
from rebasecore.ledger.state import LedgerState
from rebasecore.runtime.errors import ErrorKind, LedgerError

Json = Dict[str, Any]


def _require_existing(state: LedgerState, account_id: Any) -> Json:
    aid = require_account_id(account_id)
    acct = get_account(state, aid)
    if acct is None:
        raise LedgerError(ErrorKind.INVALID_ACCOUNT, "unknown_account", {"account": aid})
    return acct


def opt_out(state: LedgerState, account_id: Any) -> Json:
    aid = require_account_id(account_id)
    _require_existing(state, aid)
    if is_non_rebasing(state, aid):
        raise LedgerError(ErrorKind.ALREADY_IN_STATE, "already_non_rebasing", {"account": aid})

    cpt = state.rebasing_credits_per_token
    credits = credits_of(state, aid)
    balance = balance_of(state, aid)

    state.rebasing_credits = checked_sub(state.rebasing_credits, credits, field="rebasing_credits")
    state.non_rebasing_supply = checked_add(state.non_rebasing_supply, balance, field="non_rebasing_supply")
    set_non_rebasing(state, aid, cpt)

    return {
        "applied": "OPT_OUT",
        "account": aid,
        "balance": balance_of(state, aid),
        "locked_credits_per_token": cpt,
        "non_rebasing": True,
    }


def opt_in(state: LedgerState, account_id: Any) -> Json:
    aid = require_account_id(account_id)
    acct = _require_existing(state, aid)
    if not is_non_rebasing(state, aid):
        raise LedgerError(ErrorKind.ALREADY_IN_STATE, "already_rebasing", {"account": aid})

    locked = int(acct["locked_credits_per_token"])
    global_cpt = state.rebasing_credits_per_token
    old_credits = credits_of(state, aid)
    old_balance = balance_of(state, aid)

    if locked == global_cpt:
        new_credits = old_credits
    else:
        new_credits = mul_truncate(div_precisely(old_credits, locked), global_cpt)

    set_credits(state, aid, new_credits)
    set_non_rebasing(state, aid, None)
    new_balance = balance_of(state, aid)

    state.non_rebasing_supply = checked_sub(state.non_rebasing_supply, old_balance, field="non_rebasing_supply")
    state.rebasing_credits = checked_add(state.rebasing_credits, new_credits, field="rebasing_credits")
    state.total_supply = checked_add(state.total_supply, new_balance - old_balance, field="total_supply")

    return {
        "applied": "OPT_IN",
        "account": aid,
        "balance": new_balance,
        "previous_balance": old_balance,
        "supply_adjustment": new_balance - old_balance,
        "non_rebasing": False,
    }


__all__ = ["opt_in", "opt_out"]
