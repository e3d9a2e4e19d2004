"""
rebasecore: credit/multiplier accounting engine for a rebasing token.

  - ledger: fixed-point math, LedgerState, per-account credits
  - runtime: operation transitions, atomic apply, ledger facade, config/logging/metrics
  - tools: replay CLI for operation sequences
"""

from rebasecore.ledger.constants import PRECISION
from rebasecore.ledger.state import LedgerState, new_ledger_state
from rebasecore.runtime.config import LedgerConfig, default_ledger_config, load_ledger_config
from rebasecore.runtime.errors import ErrorKind, LedgerError
from rebasecore.runtime.ledger import RebasingLedger
from rebasecore.runtime.op_types import OpEnvelope, OpResult

__all__ = [
    "ErrorKind",
    "LedgerConfig",
    "LedgerError",
    "LedgerState",
    "OpEnvelope",
    "OpResult",
    "PRECISION",
    "RebasingLedger",
    "default_ledger_config",
    "load_ledger_config",
    "new_ledger_state",
]
