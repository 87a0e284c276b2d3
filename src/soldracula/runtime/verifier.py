from __future__ import annotations

import logging
from typing import Any

from soldracula.ledger.client import LedgerRpcError
from soldracula.ledger.types import MEMO_PROGRAM, SYSTEM_PROGRAM, TRANSFER_KIND, MemoClaim, TransferClaim
from soldracula.runtime.errors import VerificationError
from soldracula.runtime.metrics import inc_counter
from soldracula.runtime.structured_log import log_event
from soldracula.util.base58 import b58decode, validate_address

log = logging.getLogger("soldracula.verifier")

# Plausible size range of a base58 asset address.
MEMO_MIN_LEN = 32
MEMO_MAX_LEN = 44

SIGNATURE_BYTES = 64


def _is_signature(txid: str) -> bool:
    try:
        return len(b58decode(txid)) == SIGNATURE_BYTES
    except ValueError:
        return False


class TransactionVerifier:
    """Prove a fee payment references an asset its sender currently owns.

    Checks run in a fixed order and the first failure wins:
      1) the transaction exists at confirmed commitment and did not fail
      2) instruction[0] is a system transfer to the service wallet
      3) instruction[1] is a memo carrying a 32..44 char asset address
      4) the asset's largest token account resolves
      5) that account's owner resolves
      6) the owner is the transfer's source

    Reads ledger state only.
    """

    def __init__(self, ledger: Any, service_address: str) -> None:
        self._ledger = ledger
        self._service_address = service_address

    async def verify(self, txid: str) -> str:
        """Return the verified asset identifier or raise VerificationError."""
        try:
            asset = await self._verify(txid)
        except VerificationError as e:
            inc_counter(f"verify_failed_{e.code}")
            log_event(log, "verify_failed", txid=txid, kind=e.code, reason=e.details.get("reason"))
            raise
        inc_counter("verify_ok")
        log_event(log, "verify_ok", txid=txid, asset=asset)
        return asset

    async def _verify(self, txid: str) -> str:
        if not _is_signature(txid):
            raise VerificationError.not_found(txid, "malformed_txid")

        status = await self._ledger.confirm_transaction(txid)
        if status is None:
            raise VerificationError.not_found(txid, "not_confirmed")

        tx = await self._ledger.get_parsed_transaction(txid)
        if tx is None:
            raise VerificationError.not_found(txid, "not_found")

        # A failed transaction moved no funds.
        if tx.err is not None:
            raise VerificationError.invalid_shape(txid, "transaction_failed")

        transfer_ix = tx.instruction(0)
        if transfer_ix is None:
            raise VerificationError.invalid_shape(txid, "missing_transfer")
        transfer = TransferClaim.from_instruction(transfer_ix)
        if (
            transfer.program != SYSTEM_PROGRAM
            or transfer.kind != TRANSFER_KIND
            or transfer.destination != self._service_address
        ):
            raise VerificationError.invalid_shape(
                txid,
                "bad_transfer",
                program=transfer.program,
                kind=transfer.kind,
                destination=transfer.destination,
            )

        memo_ix = tx.instruction(1)
        if memo_ix is None:
            raise VerificationError.invalid_shape(txid, "missing_memo")
        memo = MemoClaim.from_instruction(memo_ix)
        if memo.program != MEMO_PROGRAM:
            raise VerificationError.invalid_shape(txid, "bad_memo_program", program=memo.program)
        if not (MEMO_MIN_LEN <= len(memo.payload) <= MEMO_MAX_LEN):
            raise VerificationError.invalid_shape(txid, "bad_memo_length", length=len(memo.payload))

        asset = memo.payload
        if not validate_address(asset).ok:
            raise VerificationError.invalid_shape(txid, "memo_not_address")

        try:
            holders = await self._ledger.get_token_largest_accounts(asset)
        except LedgerRpcError as e:
            # The ledger refuses the lookup when the address is not a token mint.
            raise VerificationError.invalid_shape(txid, "asset_unresolved", error=e.message) from e
        if not holders or not holders[0].address:
            raise VerificationError.invalid_shape(txid, "asset_unresolved")

        account = await self._ledger.get_parsed_account_info(holders[0].address)
        if account is None or not account.owner:
            raise VerificationError.invalid_shape(txid, "holder_unresolved", holder=holders[0].address)

        if account.owner != transfer.source:
            raise VerificationError.ownership_mismatch(txid, owner=account.owner, source=transfer.source)

        return asset
