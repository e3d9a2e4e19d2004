# src/rebasecore/ledger/constants.py
"""Fixed-point and supply constants.

- All ratios/multipliers are scaled by PRECISION (1e18).
- Credits, balances and supplies are unsigned 256-bit integers.
- Total supply is capped well below the uint256 range so that
  credits * multiplier products stay representable.
"""

from __future__ import annotations

# Fixed-point scale (1.0 == 10**18)
PRECISION_DECIMALS: int = 18
PRECISION: int = 10**PRECISION_DECIMALS

# Unsigned 256-bit range
UINT256_MAX: int = 2**256 - 1

# Supply cap: ~uint128(0)
MAX_SUPPLY: int = 2**128 - 1

# Multiplier a fresh ledger starts with (1 credit == 1 token)
DEFAULT_CREDITS_PER_TOKEN: int = PRECISION

STATE_VERSION: int = 1
