# src/soldracula/crypto/wallet.py
from __future__ import annotations

import json
from pathlib import Path
from typing import List

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from soldracula.util.base58 import b58decode, b58encode

SECRET_KEY_BYTES = 64
SEED_BYTES = 32


class Wallet:
    """Service signing keypair.

    The secret file is the usual keypair JSON: an array of 64 integers, the
    32-byte Ed25519 seed followed by the 32-byte public key. Loaded once at
    startup and never mutated afterwards.
    """

    def __init__(self, secret_key: bytes) -> None:
        if len(secret_key) != SECRET_KEY_BYTES:
            raise ValueError(f"secret key must be {SECRET_KEY_BYTES} bytes; got {len(secret_key)}")

        self._private = Ed25519PrivateKey.from_private_bytes(bytes(secret_key[:SEED_BYTES]))
        pub = self._private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        if pub != bytes(secret_key[SEED_BYTES:]):
            raise ValueError("secret key public half does not match its seed")

        self._public_bytes = pub
        self._address = b58encode(pub)

    @classmethod
    def from_seed(cls, seed: bytes) -> "Wallet":
        key = Ed25519PrivateKey.from_private_bytes(bytes(seed))
        pub = key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return cls(bytes(seed) + pub)

    @classmethod
    def from_secret_file(cls, path: str) -> "Wallet":
        p = Path(path).expanduser().resolve()
        raw = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(raw, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in raw):
            raise ValueError(f"wallet file must be a JSON array of byte values: {str(p)!r}")
        return cls(bytes(raw))

    @property
    def address(self) -> str:
        """Base58 public key; the address payments must be sent to."""
        return self._address

    def secret_key_list(self) -> List[int]:
        seed = self._private.private_bytes_raw()
        return list(seed + self._public_bytes)

    def sign(self, message: bytes) -> bytes:
        return self._private.sign(message)

    def sign_b58(self, message: bytes) -> str:
        return b58encode(self.sign(message))


def verify_b58_signature(*, message: bytes, sig: str, address: str) -> bool:
    try:
        key = Ed25519PublicKey.from_public_bytes(b58decode(address))
        key.verify(b58decode(sig), message)
        return True
    except (InvalidSignature, ValueError):
        return False
