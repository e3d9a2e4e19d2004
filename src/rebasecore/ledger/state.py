"""rebasecore.ledger.state

LedgerState: the single mutable value every ledger operation reads and
writes. There is no module-level instance; callers construct one with
new_ledger_state() (or LedgerState.from_json() for a persisted copy) and
pass it explicitly.

Schema:

  {
    "state_version": 1,
    "accounts": {
      "<account_id>": {
        "credits": int,
        "non_rebasing": bool,
        "locked_credits_per_token": int | None,
      },
    },
    "rebasing_credits": int,
    "rebasing_credits_per_token": int,
    "non_rebasing_supply": int,
    "total_supply": int,
    "rounding_error": int,   # only when rounding tracking is enabled
  }
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, MutableMapping

from rebasecore.ledger.constants import DEFAULT_CREDITS_PER_TOKEN, STATE_VERSION, UINT256_MAX

Json = Dict[str, Any]

GLOBAL_KEYS = (
    "rebasing_credits",
    "rebasing_credits_per_token",
    "non_rebasing_supply",
    "total_supply",
)
ROUNDING_ERROR_KEY = "rounding_error"


def _coerce_uint(v: Any, *, field: str) -> int:
    if isinstance(v, bool):
        raise ValueError(f"LedgerState schema error: field '{field}' must be int (got bool)")
    try:
        i = int(v)
    except Exception as e:
        raise ValueError(f"LedgerState schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e
    if i < 0 or i > UINT256_MAX:
        raise ValueError(f"LedgerState schema error: field '{field}' out of uint256 range")
    return i


def new_account() -> Json:
    return {"credits": 0, "non_rebasing": False, "locked_credits_per_token": None}


@dataclass
class LedgerState(MutableMapping[str, Any]):
    """Mutable ledger state with a stable, JSON-backed schema."""

    _data: Json = field(default_factory=dict)

    # ---- Mapping protocol ----

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str, default: Any = None) -> Any:  # type: ignore[override]
        return self._data.get(key, default)

    # ---- JSON interop ----

    def to_json(self) -> Json:
        return copy.deepcopy(self._data)

    @classmethod
    def from_json(cls, d: Any) -> "LedgerState":
        if not isinstance(d, dict):
            raise ValueError(f"LedgerState schema error: root must be dict (got {type(d).__name__})")
        st = cls(_data=copy.deepcopy(d))
        st.validate()
        return st

    # ---- Global scalars ----

    @property
    def accounts(self) -> Json:
        a = self._data.get("accounts")
        if not isinstance(a, dict):
            a = {}
            self._data["accounts"] = a
        return a

    @property
    def rebasing_credits(self) -> int:
        return int(self._data.get("rebasing_credits", 0))

    @rebasing_credits.setter
    def rebasing_credits(self, v: int) -> None:
        self._data["rebasing_credits"] = int(v)

    @property
    def rebasing_credits_per_token(self) -> int:
        return int(self._data.get("rebasing_credits_per_token", DEFAULT_CREDITS_PER_TOKEN))

    @rebasing_credits_per_token.setter
    def rebasing_credits_per_token(self, v: int) -> None:
        self._data["rebasing_credits_per_token"] = int(v)

    @property
    def non_rebasing_supply(self) -> int:
        return int(self._data.get("non_rebasing_supply", 0))

    @non_rebasing_supply.setter
    def non_rebasing_supply(self, v: int) -> None:
        self._data["non_rebasing_supply"] = int(v)

    @property
    def total_supply(self) -> int:
        return int(self._data.get("total_supply", 0))

    @total_supply.setter
    def total_supply(self, v: int) -> None:
        self._data["total_supply"] = int(v)

    # ---- Rounding accumulator (optional) ----

    @property
    def tracks_rounding(self) -> bool:
        return ROUNDING_ERROR_KEY in self._data

    @property
    def rounding_error(self) -> int:
        return int(self._data.get(ROUNDING_ERROR_KEY, 0))

    @rounding_error.setter
    def rounding_error(self, v: int) -> None:
        self._data[ROUNDING_ERROR_KEY] = int(v)

    # ---- Schema validation ----

    def validate(self) -> None:
        """Strict schema check. Raises ValueError on the first violation."""

        v = self._data.get("state_version", STATE_VERSION)
        if _coerce_uint(v, field="state_version") != STATE_VERSION:
            raise ValueError(f"LedgerState schema error: state_version={v} != {STATE_VERSION}")
        self._data["state_version"] = STATE_VERSION

        for key in GLOBAL_KEYS:
            self._data[key] = _coerce_uint(self._data.get(key, 0), field=key)
        if self._data["rebasing_credits_per_token"] <= 0:
            raise ValueError("LedgerState schema error: rebasing_credits_per_token must be > 0")

        if ROUNDING_ERROR_KEY in self._data:
            re_ = self._data[ROUNDING_ERROR_KEY]
            if isinstance(re_, bool) or not isinstance(re_, int):
                raise ValueError("LedgerState schema error: rounding_error must be int")

        accounts = self._data.get("accounts", {})
        if not isinstance(accounts, dict):
            raise ValueError(f"LedgerState schema error: accounts must be dict (got {type(accounts).__name__})")
        self._data["accounts"] = accounts

        for aid, acct in accounts.items():
            if not isinstance(aid, str) or not aid.strip():
                raise ValueError("LedgerState schema error: account ids must be non-empty strings")
            if not isinstance(acct, dict):
                raise ValueError(f"LedgerState schema error: accounts['{aid}'] must be dict (got {type(acct).__name__})")

            acct["credits"] = _coerce_uint(acct.get("credits", 0), field=f"accounts['{aid}'].credits")
            non_rebasing = acct.get("non_rebasing", False)
            if not isinstance(non_rebasing, bool):
                raise ValueError(f"LedgerState schema error: accounts['{aid}'].non_rebasing must be bool")

            locked = acct.get("locked_credits_per_token")
            if non_rebasing:
                if locked is None:
                    raise ValueError(
                        f"LedgerState schema error: accounts['{aid}'] is non-rebasing without a locked multiplier"
                    )
                locked = _coerce_uint(locked, field=f"accounts['{aid}'].locked_credits_per_token")
                if locked <= 0:
                    raise ValueError(f"LedgerState schema error: accounts['{aid}'].locked_credits_per_token must be > 0")
            elif locked is not None:
                raise ValueError(f"LedgerState schema error: accounts['{aid}'] is rebasing but has a locked multiplier")
            acct["locked_credits_per_token"] = locked


def new_ledger_state(
    *,
    initial_credits_per_token: int = DEFAULT_CREDITS_PER_TOKEN,
    track_rounding: bool = False,
) -> LedgerState:
    cpt = int(initial_credits_per_token)
    if cpt <= 0 or cpt > UINT256_MAX:
        raise ValueError(f"initial_credits_per_token must be in 1..UINT256_MAX; got: {initial_credits_per_token}")

    data: Json = {
        "state_version": STATE_VERSION,
        "accounts": {},
        "rebasing_credits": 0,
        "rebasing_credits_per_token": cpt,
        "non_rebasing_supply": 0,
        "total_supply": 0,
    }
    if track_rounding:
        data[ROUNDING_ERROR_KEY] = 0
    return LedgerState(_data=data)


__all__ = ["GLOBAL_KEYS", "Json", "LedgerState", "ROUNDING_ERROR_KEY", "new_account", "new_ledger_state"]
