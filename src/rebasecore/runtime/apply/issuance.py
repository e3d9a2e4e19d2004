# src/rebasecore/runtime/apply/issuance.py
from __future__ import annotations

from typing import Any, Dict, Protocol, Tuple, runtime_checkable

from rebasecore.ledger.accounts import (
    add_credits,
    balance_of,
    credits_of,
    credits_per_token,
    ensure_account,
    is_non_rebasing,
    require_account_id,
    sub_credits,
)
from rebasecore.ledger.constants import MAX_SUPPLY
from rebasecore.ledger.fixed_point import checked_add, checked_sub, div_precisely, mul_truncate, require_uint
from rebasecore.ledger.state import LedgerState
from rebasecore.runtime.errors import ErrorKind, LedgerError

Json = Dict[str, Any]


@runtime_checkable
class BurnPolicy(Protocol):
    name: str

    def plan(self, *, amount: int, credits_per_token: int, non_rebasing: bool) -> Tuple[int, int]:
        """Return (credits to remove, reduction of non_rebasing_supply)."""
        ...


class StrictBurnPolicy:
    """
    Rejects burns that would remove zero credits, and reduces the
    non-rebasing aggregate by the balance actually removed.

    Without the dust check, burning 1 token at a multiplier below
    PRECISION subtracts 0 credits: total supply shrinks while the displayed
    balance does not move.
    """

    name = "strict"

    def plan(self, *, amount: int, credits_per_token: int, non_rebasing: bool) -> Tuple[int, int]:
        credit_amount = mul_truncate(amount, credits_per_token)
        if credit_amount == 0:
            raise LedgerError(
                ErrorKind.DUST_AMOUNT_BURN,
                "burn_rounds_to_zero_credits",
                {"amount": amount, "credits_per_token": credits_per_token},
            )
        reduction = div_precisely(credit_amount, credits_per_token) if non_rebasing else 0
        return credit_amount, reduction


class NaiveBurnPolicy:
    """Historical behavior, kept for side-by-side comparison."""

    name = "naive"

    def plan(self, *, amount: int, credits_per_token: int, non_rebasing: bool) -> Tuple[int, int]:
        return mul_truncate(amount, credits_per_token), (amount if non_rebasing else 0)


BURN_POLICIES: Dict[str, type] = {
    StrictBurnPolicy.name: StrictBurnPolicy,
    NaiveBurnPolicy.name: NaiveBurnPolicy,
}


def mint(state: LedgerState, account_id: Any, amount: Any) -> Json:
    aid = require_account_id(account_id)
    amt = require_uint(amount)

    ensure_account(state, aid)
    cpt = credits_per_token(state, aid)
    credit_amount = mul_truncate(amt, cpt)

    new_total = checked_add(state.total_supply, amt, field="total_supply")
    if new_total > MAX_SUPPLY:
        raise LedgerError(
            ErrorKind.ARITHMETIC_OVERFLOW,
            "max_supply_exceeded",
            {"total_supply": state.total_supply, "amount": amt, "max_supply": MAX_SUPPLY},
        )

    add_credits(state, aid, credit_amount)
    if is_non_rebasing(state, aid):
        state.non_rebasing_supply = checked_add(state.non_rebasing_supply, amt, field="non_rebasing_supply")
    else:
        state.rebasing_credits = checked_add(state.rebasing_credits, credit_amount, field="rebasing_credits")
    state.total_supply = new_total

    return {
        "applied": "MINT",
        "account": aid,
        "amount": amt,
        "credits": credit_amount,
        "balance": balance_of(state, aid),
    }


def burn(state: LedgerState, account_id: Any, amount: Any, *, policy: BurnPolicy | None = None) -> Json:
    aid = require_account_id(account_id)
    amt = require_uint(amount)

    if amt == 0:
        return {"applied": "BURN", "account": aid, "amount": 0, "credits": 0, "balance": balance_of(state, aid)}

    pol = policy or StrictBurnPolicy()
    cpt = credits_per_token(state, aid)
    non_rebasing = is_non_rebasing(state, aid)
    credit_amount, reduction = pol.plan(amount=amt, credits_per_token=cpt, non_rebasing=non_rebasing)

    # checked after the dust rule so a dust request reports as dust
    balance = balance_of(state, aid)
    if amt > balance or credits_of(state, aid) < credit_amount:
        raise LedgerError(
            ErrorKind.INSUFFICIENT_BALANCE,
            "burn_exceeds_balance",
            {"account": aid, "amount": amt, "balance": balance},
        )

    sub_credits(state, aid, credit_amount)
    if non_rebasing:
        state.non_rebasing_supply = checked_sub(state.non_rebasing_supply, reduction, field="non_rebasing_supply")
    else:
        state.rebasing_credits = checked_sub(state.rebasing_credits, credit_amount, field="rebasing_credits")
    state.total_supply = checked_sub(state.total_supply, amt, field="total_supply")

    return {
        "applied": "BURN",
        "account": aid,
        "amount": amt,
        "credits": credit_amount,
        "balance": balance_of(state, aid),
        "policy": getattr(pol, "name", type(pol).__name__),
    }


__all__ = ["BURN_POLICIES", "BurnPolicy", "NaiveBurnPolicy", "StrictBurnPolicy", "burn", "mint"]
