# src/soldracula/ledger/types.py
from __future__ import annotations

"""Typed views over the ledger's `jsonParsed` RPC payloads.

The ledger owns these records; we only read them. Parsing is lenient about
missing fields (they come back as empty strings / None) so the verifier can
decide what counts as a malformed transaction.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

Json = Dict[str, Any]

SYSTEM_PROGRAM = "system"
MEMO_PROGRAM = "spl-memo"
TRANSFER_KIND = "transfer"

# Commitment levels understood by the ledger.
COMMITMENT_CONFIRMED = "confirmed"
COMMITMENT_FINALIZED = "finalized"


def _s(v: Any) -> str:
    return "" if v is None else str(v)


@dataclass(frozen=True)
class ParsedInstruction:
    program: str
    program_id: str
    # Either a dict ({"type": ..., "info": {...}}) or a bare string (memo).
    parsed: Any

    @classmethod
    def from_json(cls, obj: Any) -> "ParsedInstruction":
        if not isinstance(obj, dict):
            return cls(program="", program_id="", parsed=None)
        return cls(
            program=_s(obj.get("program")),
            program_id=_s(obj.get("programId")),
            parsed=obj.get("parsed"),
        )


@dataclass(frozen=True)
class TransferClaim:
    program: str
    kind: str
    source: str
    destination: str
    lamports: int = 0

    @classmethod
    def from_instruction(cls, ix: ParsedInstruction) -> "TransferClaim":
        parsed = ix.parsed if isinstance(ix.parsed, dict) else {}
        info = parsed.get("info") if isinstance(parsed.get("info"), dict) else {}
        try:
            lamports = int(info.get("lamports") or 0)
        except (TypeError, ValueError):
            lamports = 0
        return cls(
            program=ix.program,
            kind=_s(parsed.get("type")),
            source=_s(info.get("source")),
            destination=_s(info.get("destination")),
            lamports=lamports,
        )


@dataclass(frozen=True)
class MemoClaim:
    program: str
    payload: str

    @classmethod
    def from_instruction(cls, ix: ParsedInstruction) -> "MemoClaim":
        payload = ix.parsed if isinstance(ix.parsed, str) else ""
        return cls(program=ix.program, payload=payload)


@dataclass(frozen=True)
class TransactionRecord:
    signature: str
    slot: int
    block_time: Optional[int]
    err: Any
    instructions: Tuple[ParsedInstruction, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, signature: str, obj: Json) -> "TransactionRecord":
        meta = obj.get("meta") if isinstance(obj.get("meta"), dict) else {}
        tx = obj.get("transaction") if isinstance(obj.get("transaction"), dict) else {}
        message = tx.get("message") if isinstance(tx.get("message"), dict) else {}
        raw_ixs = message.get("instructions") if isinstance(message.get("instructions"), list) else []

        bt = obj.get("blockTime")
        return cls(
            signature=str(signature),
            slot=int(obj.get("slot") or 0),
            block_time=int(bt) if isinstance(bt, int) else None,
            err=meta.get("err"),
            instructions=tuple(ParsedInstruction.from_json(ix) for ix in raw_ixs),
        )

    def instruction(self, index: int) -> Optional[ParsedInstruction]:
        if 0 <= index < len(self.instructions):
            return self.instructions[index]
        return None


@dataclass(frozen=True)
class TokenAccountBalance:
    address: str
    amount: str
    decimals: int

    @classmethod
    def from_json(cls, obj: Json) -> "TokenAccountBalance":
        return cls(
            address=_s(obj.get("address")),
            amount=_s(obj.get("amount")),
            decimals=int(obj.get("decimals") or 0),
        )


@dataclass(frozen=True)
class ParsedAccount:
    """A token account as reported by `getAccountInfo` with jsonParsed."""

    address: str
    program: str
    owner: str
    mint: str

    @classmethod
    def from_json(cls, address: str, value: Json) -> "ParsedAccount":
        data = value.get("data") if isinstance(value.get("data"), dict) else {}
        parsed = data.get("parsed") if isinstance(data.get("parsed"), dict) else {}
        info = parsed.get("info") if isinstance(parsed.get("info"), dict) else {}
        return cls(
            address=str(address),
            program=_s(data.get("program")),
            owner=_s(info.get("owner")),
            mint=_s(info.get("mint")),
        )


def token_balances_from_json(value: Any) -> List[TokenAccountBalance]:
    if not isinstance(value, list):
        return []
    return [TokenAccountBalance.from_json(v) for v in value if isinstance(v, dict)]
