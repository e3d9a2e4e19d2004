# src/rebasecore/runtime/apply/transfer.py
"""Cross-account value movement.

Sender and receiver may sit under different multipliers (global vs a
locked per-account snapshot), so the credits removed from one side and
added to the other generally differ. The rounding strategy decides how
both figures are derived from the token amount.
"""

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
from rebasecore.ledger.fixed_point import checked_add, checked_sub, div_precisely, mul_truncate, require_uint
from rebasecore.ledger.state import LedgerState
from rebasecore.runtime.errors import ErrorKind, LedgerError

Json = Dict[str, Any]


@runtime_checkable
class TransferRoundingStrategy(Protocol):
    name: str

    def credit_amounts(self, *, amount: int, from_cpt: int, to_cpt: int) -> Tuple[int, int]:
        """Return (credits deducted from sender, credits credited to receiver)."""
        ...


class DerivedTransferRounding:
    """
    Compute the side with the coarser multiplier first, reconstruct the token
    amount it actually represents, and derive the other side from that.

    This narrows (but cannot close) the gap between tokens debited and tokens
    credited that independent truncation on each side produces.
    """

    name = "derived"

    def credit_amounts(self, *, amount: int, from_cpt: int, to_cpt: int) -> Tuple[int, int]:
        if from_cpt == to_cpt:
            credits = mul_truncate(amount, from_cpt)
            return credits, credits

        if from_cpt > to_cpt:
            credited = mul_truncate(amount, to_cpt)
            deducted = mul_truncate(div_precisely(credited, to_cpt), from_cpt)
            return deducted, credited

        deducted = mul_truncate(amount, from_cpt)
        credited = mul_truncate(div_precisely(deducted, from_cpt), to_cpt)
        return deducted, credited


class IndependentTransferRounding:
    """Historical behavior: each side truncates amount on its own."""

    name = "independent"

    def credit_amounts(self, *, amount: int, from_cpt: int, to_cpt: int) -> Tuple[int, int]:
        return mul_truncate(amount, from_cpt), mul_truncate(amount, to_cpt)


TRANSFER_ROUNDING_STRATEGIES: Dict[str, type] = {
    DerivedTransferRounding.name: DerivedTransferRounding,
    IndependentTransferRounding.name: IndependentTransferRounding,
}


def transfer(
    state: LedgerState,
    from_id: Any,
    to_id: Any,
    amount: Any,
    *,
    strategy: TransferRoundingStrategy | None = None,
) -> Json:
    frm = require_account_id(from_id)
    to = require_account_id(to_id)
    amt = require_uint(amount)

    from_before = balance_of(state, frm)
    if amt > from_before:
        raise LedgerError(
            ErrorKind.INSUFFICIENT_BALANCE,
            "transfer_exceeds_balance",
            {"from": frm, "balance": from_before, "amount": amt},
        )

    ensure_account(state, frm)
    ensure_account(state, to)

    strat = strategy or DerivedTransferRounding()
    from_cpt = credits_per_token(state, frm)
    to_cpt = credits_per_token(state, to)
    deducted, credited = strat.credit_amounts(amount=amt, from_cpt=from_cpt, to_cpt=to_cpt)

    if credits_of(state, frm) < deducted:
        raise LedgerError(
            ErrorKind.INSUFFICIENT_BALANCE,
            "credits_below_deduction",
            {"from": frm, "credits": credits_of(state, frm), "deducted": deducted},
        )

    # Same account may appear on both sides; measure it once.
    before: Dict[str, int] = {frm: from_before}
    before.setdefault(to, balance_of(state, to))

    sub_credits(state, frm, deducted)
    add_credits(state, to, credited)

    rebasing_credits = state.rebasing_credits
    if not is_non_rebasing(state, to):
        rebasing_credits = checked_add(rebasing_credits, credited, field="rebasing_credits")
    if not is_non_rebasing(state, frm):
        rebasing_credits = checked_sub(rebasing_credits, deducted, field="rebasing_credits")

    non_rebasing_supply = state.non_rebasing_supply
    for aid, bal_before in before.items():
        if is_non_rebasing(state, aid):
            non_rebasing_supply = checked_add(
                non_rebasing_supply, balance_of(state, aid) - bal_before, field="non_rebasing_supply"
            )

    state.rebasing_credits = rebasing_credits
    state.non_rebasing_supply = non_rebasing_supply

    return {
        "applied": "TRANSFER",
        "from": frm,
        "to": to,
        "amount": amt,
        "credits_deducted": deducted,
        "credits_credited": credited,
        "from_balance": balance_of(state, frm),
        "to_balance": balance_of(state, to),
        "strategy": getattr(strat, "name", type(strat).__name__),
    }


__all__ = [
    "DerivedTransferRounding",
    "IndependentTransferRounding",
    "TRANSFER_ROUNDING_STRATEGIES",
    "TransferRoundingStrategy",
    "transfer",
]
