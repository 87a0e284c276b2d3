from __future__ import annotations

import json

import pytest

from soldracula.crypto.wallet import Wallet, verify_b58_signature
from soldracula.util.base58 import b58decode, b58encode, validate_address


def test_base58_known_vectors() -> None:
    # The system program id is 32 zero bytes.
    assert b58encode(bytes(32)) == "1" * 32
    assert b58decode("1" * 32) == bytes(32)
    assert b58encode(b"hello world") == "StV1DL6CwTryKyV"
    assert b58decode("StV1DL6CwTryKyV") == b"hello world"


def test_base58_rejects_foreign_characters() -> None:
    with pytest.raises(ValueError):
        b58decode("0OIl")


def test_validate_address() -> None:
    assert validate_address("11111111111111111111111111111111").ok
    assert validate_address("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr").ok
    assert validate_address("").reason == "missing_address"
    assert validate_address("abc").reason == "invalid_address_format"
    # 44 "z"s decode to more than 32 bytes.
    assert validate_address("z" * 44).reason == "invalid_address_length"


_MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"


@pytest.mark.parametrize("padded", [_MEMO_PROGRAM_ID + "\n", " " + _MEMO_PROGRAM_ID, _MEMO_PROGRAM_ID + " "])
def test_validate_address_rejects_surrounding_whitespace(padded: str) -> None:
    assert validate_address(padded).reason == "invalid_address_format"
    with pytest.raises(ValueError):
        b58decode(padded)


def test_wallet_round_trips_secret_file(tmp_path) -> None:
    w = Wallet.from_seed(bytes(range(32)))
    p = tmp_path / "id.json"
    p.write_text(json.dumps(w.secret_key_list()), encoding="utf-8")

    loaded = Wallet.from_secret_file(str(p))
    assert loaded.address == w.address
    assert len(b58decode(loaded.address)) == 32


def test_wallet_rejects_mismatched_public_half() -> None:
    w = Wallet.from_seed(bytes(range(32)))
    raw = w.secret_key_list()
    raw[-1] ^= 0xFF
    with pytest.raises(ValueError):
        Wallet(bytes(raw))


def test_wallet_rejects_non_array_file(tmp_path) -> None:
    p = tmp_path / "id.json"
    p.write_text(json.dumps({"key": "nope"}), encoding="utf-8")
    with pytest.raises(ValueError):
        Wallet.from_secret_file(str(p))


def test_signatures_verify_against_address() -> None:
    w = Wallet.from_seed(bytes([5]) * 32)
    sig = w.sign_b58(b"payload")
    assert verify_b58_signature(message=b"payload", sig=sig, address=w.address)
    assert not verify_b58_signature(message=b"tampered", sig=sig, address=w.address)
