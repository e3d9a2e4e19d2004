# src/rebasecore/runtime/apply/supply.py
"""Supply change ("rebase").

One transition: change_supply(new_total_supply). Every rebasing account
shares rebasing_credits_per_token, so a single div_precisely replaces a
per-account update. The price is that each rebasing balance floors
independently afterwards: the sum of rebasing balances may fall short of
rebasing_credits / rebasing_credits_per_token by up to (accounts - 1).

Nothing here reports to the rounding tracker. Measuring the drift a rebase
introduces means summing every balance before and after.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, Tuple, runtime_checkable

from rebasecore.ledger.constants import MAX_SUPPLY
from rebasecore.ledger.fixed_point import div_precisely, require_uint
from rebasecore.ledger.state import LedgerState
from rebasecore.runtime.errors import ErrorKind, LedgerError

Json = Dict[str, Any]


@runtime_checkable
class SupplyChangeStrategy(Protocol):
    """Maps a requested supply to (new multiplier, new cached total supply)."""

    name: str

    def compute(self, *, rebasing_credits: int, non_rebasing_supply: int, new_total_supply: int) -> Tuple[int, int]: ...


def rebasing_multiplier(*, rebasing_credits: int, non_rebasing_supply: int, new_total_supply: int) -> int:
    if new_total_supply < non_rebasing_supply:
        raise LedgerError(
            ErrorKind.INVALID_SUPPLY_CHANGE,
            "supply_below_non_rebasing",
            {"new_total_supply": new_total_supply, "non_rebasing_supply": non_rebasing_supply},
        )
    rebasing_supply = new_total_supply - non_rebasing_supply
    if rebasing_supply == 0:
        raise LedgerError(
            ErrorKind.INVALID_SUPPLY_CHANGE,
            "no_rebasing_supply",
            {"new_total_supply": new_total_supply, "non_rebasing_supply": non_rebasing_supply},
        )

    cpt = div_precisely(rebasing_credits, rebasing_supply)
    if cpt <= 0:
        raise LedgerError(
            ErrorKind.INVALID_SUPPLY_CHANGE,
            "credits_per_token_zero",
            {"rebasing_credits": rebasing_credits, "rebasing_supply": rebasing_supply},
        )
    return cpt


class DerivedSupplyChange:
    """Total supply is read back from the multiplier just set.

    Keeps the cached total consistent with what rebasing balances sum to,
    up to per-account truncation.
    """

    name = "derived"

    def compute(self, *, rebasing_credits: int, non_rebasing_supply: int, new_total_supply: int) -> Tuple[int, int]:
        cpt = rebasing_multiplier(
            rebasing_credits=rebasing_credits,
            non_rebasing_supply=non_rebasing_supply,
            new_total_supply=new_total_supply,
        )
        return cpt, div_precisely(rebasing_credits, cpt) + non_rebasing_supply


class NominalSupplyChange:
    """Historical behavior: the requested supply is trusted as-is."""

    name = "nominal"

    def compute(self, *, rebasing_credits: int, non_rebasing_supply: int, new_total_supply: int) -> Tuple[int, int]:
        cpt = rebasing_multiplier(
            rebasing_credits=rebasing_credits,
            non_rebasing_supply=non_rebasing_supply,
            new_total_supply=new_total_supply,
        )
        return cpt, new_total_supply


SUPPLY_CHANGE_STRATEGIES: Dict[str, type] = {
    DerivedSupplyChange.name: DerivedSupplyChange,
    NominalSupplyChange.name: NominalSupplyChange,
}


def change_supply(state: LedgerState, new_total_supply: Any, *, strategy: SupplyChangeStrategy | None = None) -> Json:
    requested = require_uint(new_total_supply, field="new_total_supply")

    previous_total = state.total_supply
    previous_cpt = state.rebasing_credits_per_token
    if previous_total == 0:
        raise LedgerError(ErrorKind.INVALID_SUPPLY_CHANGE, "cannot_change_zero_supply", {})

    if requested == previous_total:
        return {
            "applied": "CHANGE_SUPPLY",
            "changed": False,
            "total_supply": previous_total,
            "rebasing_credits_per_token": previous_cpt,
        }

    if requested > MAX_SUPPLY:
        raise LedgerError(
            ErrorKind.INVALID_SUPPLY_CHANGE,
            "max_supply_exceeded",
            {"new_total_supply": requested, "max_supply": MAX_SUPPLY},
        )

    strat = strategy or DerivedSupplyChange()
    cpt, total = strat.compute(
        rebasing_credits=state.rebasing_credits,
        non_rebasing_supply=state.non_rebasing_supply,
        new_total_supply=requested,
    )

    state.rebasing_credits_per_token = cpt
    state.total_supply = total

    return {
        "applied": "CHANGE_SUPPLY",
        "changed": True,
        "requested_total_supply": requested,
        "total_supply": total,
        "rebasing_credits_per_token": cpt,
        "previous_credits_per_token": previous_cpt,
        "strategy": getattr(strat, "name", type(strat).__name__),
    }


__all__ = [
    "DerivedSupplyChange",
    "NominalSupplyChange",
    "SUPPLY_CHANGE_STRATEGIES",
    "SupplyChangeStrategy",
    "change_supply",
    "rebasing_multiplier",
]
