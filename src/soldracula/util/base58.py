# src/soldracula/util/base58.py
"""Base58 (bitcoin alphabet) helpers for ledger addresses and signatures.

Kept small and dependency-free: addresses are 32-byte keys rendered as
32..44 base58 characters, signatures are 64 bytes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {c: i for i, c in enumerate(ALPHABET)}

_ADDRESS_RE = re.compile(r"[1-9A-HJ-NP-Za-km-z]{32,44}")

ADDRESS_BYTES = 32


def b58encode(data: bytes) -> str:
    n = int.from_bytes(data, "big")
    out = []
    while n > 0:
        n, rem = divmod(n, 58)
        out.append(ALPHABET[rem])

    # Leading zero bytes map to leading "1"s.
    pad = len(data) - len(data.lstrip(b"\0"))
    return "1" * pad + "".join(reversed(out))


def b58decode(s: str) -> bytes:
    s = s or ""
    if not s:
        raise ValueError("empty base58 string")

    n = 0
    for ch in s:
        v = _INDEX.get(ch)
        if v is None:
            raise ValueError(f"invalid base58 character: {ch!r}")
        n = n * 58 + v

    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    pad = len(s) - len(s.lstrip("1"))
    return b"\0" * pad + body


@dataclass(frozen=True)
class AddressValidation:
    ok: bool
    reason: str
    address: str


def validate_address(address: str) -> AddressValidation:
    a = address or ""
    if not a:
        return AddressValidation(False, "missing_address", "")
    # The exact string is checked; surrounding whitespace is not tolerated.
    if not _ADDRESS_RE.fullmatch(a):
        return AddressValidation(False, "invalid_address_format", a)
    try:
        raw = b58decode(a)
    except ValueError:
        return AddressValidation(False, "invalid_address_format", a)
    if len(raw) != ADDRESS_BYTES:
        return AddressValidation(False, "invalid_address_length", a)
    return AddressValidation(True, "ok", a)
