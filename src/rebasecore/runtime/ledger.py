# src/rebasecore/runtime/ledger.py
"""Synchronous ledger facade.

RebasingLedger owns one LedgerState and serializes every operation through
a lock, so concurrent callers observe a single total order. Mutating calls
never raise for an invalid request: they return an OpResult that the caller
must check.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from rebasecore.env import load_dotenv_if_present
from rebasecore.ledger import accounts as acct
from rebasecore.ledger.state import Json, LedgerState, new_ledger_state
from rebasecore.runtime import metrics
from rebasecore.runtime.apply.issuance import BURN_POLICIES
from rebasecore.runtime.apply.supply import SUPPLY_CHANGE_STRATEGIES
from rebasecore.runtime.apply.transfer import TRANSFER_ROUNDING_STRATEGIES
from rebasecore.runtime.config import LedgerConfig, default_ledger_config, load_ledger_config, validate_ledger_config
from rebasecore.runtime.domain_apply import OpStrategies, apply_op_atomic
from rebasecore.runtime.errors import LedgerError
from rebasecore.runtime.op_types import OpEnvelope, OpResult
from rebasecore.runtime.rounding_tracker import RoundingErrorTracker, reported_total_supply
from rebasecore.runtime.state_invariants import audit_state
from rebasecore.runtime.structured_logging import configure_structured_logging, log_event


def strategies_from_config(cfg: LedgerConfig) -> OpStrategies:
    return OpStrategies(
        supply_change=SUPPLY_CHANGE_STRATEGIES[cfg.supply_change](),
        transfer_rounding=TRANSFER_ROUNDING_STRATEGIES[cfg.transfer_rounding](),
        burn_policy=BURN_POLICIES[cfg.burn_policy](),
    )


class RebasingLedger:
    def __init__(
        self,
        *,
        config: Optional[LedgerConfig] = None,
        state: Optional[LedgerState] = None,
        strategies: Optional[OpStrategies] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or default_ledger_config()
        validate_ledger_config(self.config)

        if state is None:
            state = new_ledger_state(
                initial_credits_per_token=self.config.initial_credits_per_token,
                track_rounding=self.config.track_rounding_errors,
            )
        else:
            state.validate()
            if self.config.track_rounding_errors and not state.tracks_rounding:
                state.rounding_error = 0

        self._state = state
        self._strategies = strategies or strategies_from_config(self.config)
        self._tracker = RoundingErrorTracker()
        self._lock = threading.Lock()
        self._log = logger or logging.getLogger("rebasecore.ledger")
        self._metrics = bool(self.config.metrics_enabled or metrics.metrics_enabled())

    @classmethod
    def from_env(cls, *, config_path: Optional[str] = None) -> "RebasingLedger":
        # Load .env before the config reads REBASECORE_* variables.
        load_dotenv_if_present()
        cfg = load_ledger_config(config_path=config_path)
        configure_structured_logging(cfg.log_level)
        return cls(config=cfg)

    @property
    def strategies(self) -> OpStrategies:
        return self._strategies

    @property
    def tracks_rounding(self) -> bool:
        return self._state.tracks_rounding

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def submit(self, op: Any) -> OpResult:
        env = OpEnvelope.from_json(op)
        with self._lock:
            previous_cpt = self._state.rebasing_credits_per_token
            try:
                value = apply_op_atomic(self._state, env, strategies=self._strategies, tracker=self._tracker)
            except LedgerError as e:
                result = OpResult.rejected(e)
                log_event(
                    self._log,
                    "ledger_op_rejected",
                    op_type=env.op_type,
                    code=result.code,
                    reason=result.reason,
                    details=result.details,
                )
                if self._metrics:
                    metrics.record_rejected(result.code)
                return result

            if env.op_type == "CHANGE_SUPPLY" and value.get("changed"):
                log_event(
                    self._log,
                    "ledger_supply_changed",
                    previous_credits_per_token=previous_cpt,
                    rebasing_credits_per_token=self._state.rebasing_credits_per_token,
                    total_supply=self._state.total_supply,
                )
            log_event(self._log, "ledger_op_applied", op_type=env.op_type, payload=env.payload)
            if self._metrics:
                self._record_metrics(env.op_type)
            return OpResult.applied(value)

    def _record_metrics(self, op_type: str) -> None:
        st = self._state
        metrics.record_applied(op_type)
        metrics.record_supply(
            total_supply=st.total_supply,
            rebasing_credits_per_token=st.rebasing_credits_per_token,
            rounding_error=st.rounding_error if st.tracks_rounding else None,
        )

    def mint(self, account: str, amount: int) -> OpResult:
        return self.submit(OpEnvelope("MINT", {"account": account, "amount": amount}))

    def burn(self, account: str, amount: int) -> OpResult:
        return self.submit(OpEnvelope("BURN", {"account": account, "amount": amount}))

    def transfer(self, from_account: str, to_account: str, amount: int) -> OpResult:
        return self.submit(OpEnvelope("TRANSFER", {"from": from_account, "to": to_account, "amount": amount}))

    def opt_in(self, account: str) -> OpResult:
        return self.submit(OpEnvelope("OPT_IN", {"account": account}))

    def opt_out(self, account: str) -> OpResult:
        return self.submit(OpEnvelope("OPT_OUT", {"account": account}))

    def change_supply(self, new_total_supply: int) -> OpResult:
        return self.submit(OpEnvelope("CHANGE_SUPPLY", {"total_supply": new_total_supply}))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        with self._lock:
            return acct.balance_of(self._state, account)

    def credits_of(self, account: str) -> int:
        with self._lock:
            return acct.credits_of(self._state, account)

    def credits_per_token(self, account: str) -> int:
        with self._lock:
            return acct.credits_per_token(self._state, account)

    def is_non_rebasing(self, account: str) -> bool:
        with self._lock:
            return acct.is_non_rebasing(self._state, account)

    def total_supply(self) -> int:
        with self._lock:
            return reported_total_supply(self._state)

    def rounding_error(self) -> Optional[int]:
        with self._lock:
            return self._state.rounding_error if self._state.tracks_rounding else None

    def supply_report(self) -> Json:
        with self._lock:
            st = self._state
            out: Json = {
                "total_supply": reported_total_supply(st),
                "cached_total_supply": st.total_supply,
                "rebasing_credits": st.rebasing_credits,
                "rebasing_credits_per_token": st.rebasing_credits_per_token,
                "non_rebasing_supply": st.non_rebasing_supply,
            }
            if st.tracks_rounding:
                out["rounding_error"] = st.rounding_error
            return out

    def audit(self) -> Json:
        with self._lock:
            return audit_state(self._state)

    def state_json(self) -> Json:
        with self._lock:
            return self._state.to_json()


__all__ = ["RebasingLedger", "strategies_from_config"]
