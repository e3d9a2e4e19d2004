# src/rebasecore/ledger/accounts.py
"""Per-account credit storage and rebasing classification.

Credits are owned here. The supply, transfer and opt-in/out modules move
credits only through add_credits/sub_credits; the global aggregates
(rebasing_credits, non_rebasing_supply, total_supply) are theirs to keep.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from rebasecore.ledger.fixed_point import checked_add, div_precisely
from rebasecore.ledger.state import LedgerState, new_account
from rebasecore.runtime.errors import ErrorKind, LedgerError

Json = Dict[str, Any]


def require_account_id(account_id: Any) -> str:
    if not isinstance(account_id, str) or not account_id.strip():
        raise LedgerError(ErrorKind.INVALID_ACCOUNT, "bad_account_id", {"account": account_id})
    return account_id


def get_account(state: LedgerState, account_id: str) -> Optional[Json]:
    acct = state.accounts.get(account_id)
    return acct if isinstance(acct, dict) else None


def ensure_account(state: LedgerState, account_id: Any) -> Json:
    """Return the account record, creating a rebasing zero-credit one on first touch."""
    aid = require_account_id(account_id)
    accounts = state.accounts
    acct = accounts.get(aid)
    if not isinstance(acct, dict):
        acct = new_account()
        accounts[aid] = acct
    return acct


def is_non_rebasing(state: LedgerState, account_id: str) -> bool:
    acct = get_account(state, account_id)
    return bool(acct and acct.get("non_rebasing"))


def credits_of(state: LedgerState, account_id: str) -> int:
    acct = get_account(state, account_id)
    return int(acct.get("credits", 0)) if acct else 0


def credits_per_token(state: LedgerState, account_id: str) -> int:
    acct = get_account(state, account_id)
    if acct and acct.get("non_rebasing"):
        return int(acct["locked_credits_per_token"])
    return state.rebasing_credits_per_token


def balance_of(state: LedgerState, account_id: str) -> int:
    acct = get_account(state, account_id)
    if not acct:
        return 0
    return div_precisely(int(acct.get("credits", 0)), credits_per_token(state, account_id))


def add_credits(state: LedgerState, account_id: str, amount: int) -> int:
    acct = ensure_account(state, account_id)
    acct["credits"] = checked_add(int(acct.get("credits", 0)), amount, field="credits")
    return acct["credits"]


def sub_credits(state: LedgerState, account_id: str, amount: int) -> int:
    acct = ensure_account(state, account_id)
    current = int(acct.get("credits", 0))
    if current < int(amount):
        raise LedgerError(
            ErrorKind.INSUFFICIENT_CREDITS,
            "credits_underflow",
            {"account": account_id, "credits": current, "amount": int(amount)},
        )
    acct["credits"] = current - int(amount)
    return acct["credits"]


def set_credits(state: LedgerState, account_id: str, credits: int) -> None:
    acct = ensure_account(state, account_id)
    acct["credits"] = int(credits)


def set_non_rebasing(state: LedgerState, account_id: str, locked_credits_per_token: Optional[int]) -> None:
    """Flip an account's class. None makes it rebasing again."""
    acct = ensure_account(state, account_id)
    if locked_credits_per_token is None:
        acct["non_rebasing"] = False
        acct["locked_credits_per_token"] = None
        return
    if int(locked_credits_per_token) <= 0:
        raise LedgerError(ErrorKind.INVALID_SUPPLY_CHANGE, "locked_multiplier_not_positive", {"account": account_id})
    acct["non_rebasing"] = True
    acct["locked_credits_per_token"] = int(locked_credits_per_token)


__all__ = [
    "add_credits",
    "balance_of",
    "credits_of",
    "credits_per_token",
    "ensure_account",
    "get_account",
    "is_non_rebasing",
    "require_account_id",
    "set_credits",
    "set_non_rebasing",
    "sub_credits",
]
