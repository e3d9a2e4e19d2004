# src/rebasecore/ledger/fixed_point.py
"""Deterministic fixed-point operators.

mul_truncate and div_precisely are the only two rounding operators in the
ledger. Both round toward zero; every credit/balance conversion funnels
through them.

The checked_* helpers give the aggregates (credits, supplies) the same
uint256 range discipline.
"""

from __future__ import annotations

from typing import Any

from rebasecore.ledger.constants import PRECISION, UINT256_MAX
from rebasecore.runtime.errors import ErrorKind, LedgerError


def require_uint(v: Any, *, field: str = "amount") -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(v, bool) or not isinstance(v, int):
        raise LedgerError(ErrorKind.INVALID_AMOUNT, "not_an_integer", {"field": field, "type": type(v).__name__})
    if v < 0:
        raise LedgerError(ErrorKind.INVALID_AMOUNT, "negative_amount", {"field": field, "value": v})
    if v > UINT256_MAX:
        raise LedgerError(ErrorKind.ARITHMETIC_OVERFLOW, "uint256_overflow", {"field": field})
    return v


def _check_range(v: int, *, op: str) -> int:
    if v < 0:
        raise LedgerError(ErrorKind.ARITHMETIC_OVERFLOW, "uint256_underflow", {"op": op})
    if v > UINT256_MAX:
        raise LedgerError(ErrorKind.ARITHMETIC_OVERFLOW, "uint256_overflow", {"op": op})
    return v


def mul_truncate(x: int, multiplier: int) -> int:
    """floor(x * multiplier / PRECISION)."""
    product = _check_range(int(x) * int(multiplier), op="mul_truncate")
    return product // PRECISION


def div_precisely(x: int, divisor: int) -> int:
    """floor(x * PRECISION / divisor)."""
    if int(divisor) == 0:
        raise LedgerError(ErrorKind.DIVISION_BY_ZERO, "div_precisely_zero_divisor", {"x": int(x)})
    scaled = _check_range(int(x) * PRECISION, op="div_precisely")
    return scaled // int(divisor)


def checked_add(a: int, b: int, *, field: str = "value") -> int:
    return _check_range(int(a) + int(b), op=f"add:{field}")


def checked_sub(a: int, b: int, *, field: str = "value") -> int:
    return _check_range(int(a) - int(b), op=f"sub:{field}")


__all__ = [
    "checked_add",
    "checked_sub",
    "div_precisely",
    "mul_truncate",
    "require_uint",
]
