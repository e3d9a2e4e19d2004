from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from rebasecore.runtime.errors import ErrorKind, LedgerError

OP_TYPES = ("MINT", "BURN", "TRANSFER", "OPT_IN", "OPT_OUT", "CHANGE_SUPPLY")


@dataclass(frozen=True)
class OpReject:
    code: str
    reason: str
    details: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class OpResult:
    ok: bool
    code: str
    reason: str
    details: Optional[Dict[str, Any]] = None
    value: Optional[Dict[str, Any]] = None

    def __iter__(self) -> Iterator[Any]:
        """Allow `ok, out = ledger.mint(...)` unpacking."""
        if self.ok:
            yield True
            yield self.value
        else:
            yield False
            yield OpReject(self.code, self.reason, self.details)

    @staticmethod
    def applied(value: Dict[str, Any]) -> "OpResult":
        return OpResult(True, "ok", "applied", None, value)

    @staticmethod
    def rejected(err: LedgerError) -> "OpResult":
        code = err.code.value if isinstance(err.code, ErrorKind) else str(err.code)
        details = err.details if isinstance(err.details, dict) else None
        return OpResult(False, code, err.reason, details, None)


@dataclass(frozen=True)
class OpEnvelope:
    op_type: str
    payload: Dict[str, Any]

    @staticmethod
    def from_json(j: Any) -> "OpEnvelope":
        if isinstance(j, OpEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return OpEnvelope(
            op_type=str(j.get("op_type", "")).strip().upper(),
            payload=dict(j.get("payload", {}) or {}),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"op_type": self.op_type, "payload": dict(self.payload)}

    def accounts(self) -> List[str]:
        """Account ids this operation may touch, in payload order."""
        keys = ("from", "to") if self.op_type == "TRANSFER" else ("account",)
        out: List[str] = []
        for k in keys:
            v = self.payload.get(k)
            if isinstance(v, str) and v not in out:
                out.append(v)
        return out


__all__ = ["OP_TYPES", "OpEnvelope", "OpReject", "OpResult"]
