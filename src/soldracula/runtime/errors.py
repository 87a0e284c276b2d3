from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_SHAPE = "invalid_shape"
    OWNERSHIP_MISMATCH = "ownership_mismatch"
    ALREADY_PROCESSED = "already_processed"
    APPEND_FAILURE = "append_failure"


# Client-facing messages. Ownership mismatch deliberately reads the same as a
# malformed transaction; the kind tells them apart.
MSG_NOT_FOUND = "Transaction not found"
MSG_INVALID = "Invalid transaction"
MSG_ALREADY_PROCESSED = "Transaction already processed."


@dataclass
class ServiceError(Exception):
    """Canonical error type for a failed /dracula request."""

    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    @property
    def code(self) -> str:
        return self.kind.value


class VerificationError(ServiceError):
    """Raised by the transaction verifier; never retried by the service."""

    @classmethod
    def not_found(cls, txid: str, reason: str) -> "VerificationError":
        return cls(ErrorKind.NOT_FOUND, MSG_NOT_FOUND, {"txid": txid, "reason": reason})

    @classmethod
    def invalid_shape(cls, txid: str, reason: str, **details: Any) -> "VerificationError":
        return cls(ErrorKind.INVALID_SHAPE, MSG_INVALID, {"txid": txid, "reason": reason, **details})

    @classmethod
    def ownership_mismatch(cls, txid: str, *, owner: str, source: str) -> "VerificationError":
        return cls(
            ErrorKind.OWNERSHIP_MISMATCH,
            MSG_INVALID,
            {"txid": txid, "reason": "owner_is_not_sender", "owner": owner, "source": source},
        )


class AppendError(ServiceError):
    """Raised by the append coordinator."""

    @classmethod
    def already_processed(cls, txid: str) -> "AppendError":
        return cls(ErrorKind.ALREADY_PROCESSED, MSG_ALREADY_PROCESSED, {"txid": txid})

    @classmethod
    def append_failure(cls, txid: str, *, step: int, total: int, reason: str) -> "AppendError":
        return cls(
            ErrorKind.APPEND_FAILURE,
            f"Append failed at step {step} of {total}",
            {"txid": txid, "step": step, "completed_steps": step - 1, "reason": reason},
        )
