# src/rebasecore/runtime/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    # math layer
    ARITHMETIC_OVERFLOW = "arithmetic_overflow"
    DIVISION_BY_ZERO = "division_by_zero"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_ACCOUNT = "invalid_account"

    # ledger layer
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    DUST_AMOUNT_BURN = "dust_amount_burn"
    ALREADY_IN_STATE = "already_in_state"
    INVALID_SUPPLY_CHANGE = "invalid_supply_change"

    # dispatch
    UNKNOWN_OPERATION = "unknown_operation"


@dataclass
class LedgerError(Exception):
    """Canonical error type for ledger operation failures.

    All kinds are local and non-retryable: they describe an operation that is
    invalid against the current state.
    """

    code: ErrorKind
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        code = self.code.value if isinstance(self.code, ErrorKind) else str(self.code)
        if self.details is None:
            return f"{code}:{self.reason}"
        return f"{code}:{self.reason}:{self.details}"
