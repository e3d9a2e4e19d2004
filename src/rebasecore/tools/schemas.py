"""Pydantic schemas for replay input files.

A replay file is either a bare list of operations or a mapping:

  config: {burn_policy: naive, track_rounding_errors: true, ...}
  ops:
    - {op_type: MINT, account: alice, amount: 100}
    - {op_type: TRANSFER, from: alice, to: bob, amount: 40}
    - {op_type: CHANGE_SUPPLY, total_supply: 150}

These models only validate file input; the ledger itself consumes
OpEnvelope records.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rebasecore.runtime.op_types import OP_TYPES, OpEnvelope

_REQUIRED_FIELDS = {
    "MINT": ("account", "amount"),
    "BURN": ("account", "amount"),
    "TRANSFER": ("from_account", "to", "amount"),
    "OPT_IN": ("account",),
    "OPT_OUT": ("account",),
    "CHANGE_SUPPLY": ("total_supply",),
}


class OpRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    op_type: str = Field(..., description="MINT | BURN | TRANSFER | OPT_IN | OPT_OUT | CHANGE_SUPPLY")
    account: Optional[str] = None
    from_account: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    total_supply: Optional[int] = Field(default=None, ge=0)

    @field_validator("op_type")
    @classmethod
    def _known_op_type(cls, v: str) -> str:
        t = str(v).strip().upper()
        if t not in OP_TYPES:
            raise ValueError(f"unknown op_type {v!r}; expected one of {list(OP_TYPES)}")
        return t

    @model_validator(mode="after")
    def _required_fields_present(self) -> "OpRecord":
        missing = [f for f in _REQUIRED_FIELDS[self.op_type] if getattr(self, f) is None]
        if missing:
            raise ValueError(f"{self.op_type} requires {missing}")
        return self

    def to_envelope(self) -> OpEnvelope:
        t = self.op_type
        if t == "TRANSFER":
            payload: Dict[str, Any] = {"from": self.from_account, "to": self.to, "amount": self.amount}
        elif t in ("MINT", "BURN"):
            payload = {"account": self.account, "amount": self.amount}
        elif t == "CHANGE_SUPPLY":
            payload = {"total_supply": self.total_supply}
        else:
            payload = {"account": self.account}
        return OpEnvelope(op_type=t, payload=payload)


class ReplayFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    config: Dict[str, Any] = Field(default_factory=dict)
    ops: List[OpRecord] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "ReplayFile":
        if isinstance(raw, list):
            return cls.model_validate({"ops": raw})
        return cls.model_validate(raw)


__all__ = ["OpRecord", "ReplayFile"]
