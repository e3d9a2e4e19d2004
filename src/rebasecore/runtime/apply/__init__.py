# src/rebasecore/runtime/apply/__init__.py
"""Per-operation ledger state transitions.

Each module mutates a LedgerState in place and raises LedgerError on an
invalid request. Fail-atomic application lives in runtime.domain_apply.

NOTE: Keep this package import-safe (no imports of runtime.domain_apply).
"""

from __future__ import annotations

__all__ = [
    "issuance",
    "rebase_opt",
    "supply",
    "transfer",
]
