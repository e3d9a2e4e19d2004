from __future__ import annotations

import pytest

from rebasecore.ledger.constants import PRECISION, UINT256_MAX
from rebasecore.ledger.fixed_point import checked_add, checked_sub, div_precisely, mul_truncate, require_uint
from rebasecore.runtime.errors import ErrorKind, LedgerError


def test_mul_truncate_rounds_toward_zero() -> None:
    assert mul_truncate(10, PRECISION) == 10
    assert mul_truncate(3, PRECISION // 2) == 1  # 1.5
    assert mul_truncate(1, PRECISION - 1) == 0
    assert mul_truncate(0, PRECISION) == 0


def test_div_precisely_rounds_toward_zero() -> None:
    assert div_precisely(10, PRECISION) == 10
    assert div_precisely(1, 666666666666666666) == 1  # 1.5000000000000000015
    assert div_precisely(2, 666666666666666666) == 3
    assert div_precisely(50, PRECISION // 2) == 100


def test_div_precisely_zero_divisor() -> None:
    with pytest.raises(LedgerError) as e:
        div_precisely(1, 0)
    assert e.value.code == ErrorKind.DIVISION_BY_ZERO


def test_intermediate_overflow_is_reported() -> None:
    with pytest.raises(LedgerError) as e:
        mul_truncate(UINT256_MAX, 2)
    assert e.value.code == ErrorKind.ARITHMETIC_OVERFLOW

    with pytest.raises(LedgerError) as e2:
        div_precisely(UINT256_MAX, 1)
    assert e2.value.code == ErrorKind.ARITHMETIC_OVERFLOW


def test_checked_helpers_stay_in_uint256() -> None:
    assert checked_add(1, 2) == 3
    assert checked_sub(5, 5) == 0
    assert checked_add(5, -2) == 3

    with pytest.raises(LedgerError) as e:
        checked_sub(1, 2, field="total_supply")
    assert e.value.code == ErrorKind.ARITHMETIC_OVERFLOW
    assert e.value.reason == "uint256_underflow"

    with pytest.raises(LedgerError):
        checked_add(UINT256_MAX, 1)


@pytest.mark.parametrize("bad", [-1, 1.5, "10", True, None])
def test_require_uint_rejects_non_uint(bad) -> None:
    with pytest.raises(LedgerError) as e:
        require_uint(bad)
    assert e.value.code == ErrorKind.INVALID_AMOUNT


def test_require_uint_accepts_range_edges() -> None:
    assert require_uint(0) == 0
    assert require_uint(UINT256_MAX) == UINT256_MAX
    with pytest.raises(LedgerError) as e:
        require_uint(UINT256_MAX + 1)
    assert e.value.code == ErrorKind.ARITHMETIC_OVERFLOW
