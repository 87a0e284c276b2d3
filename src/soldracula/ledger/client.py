# src/soldracula/ledger/client.py
from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from soldracula.ledger.types import (
    COMMITMENT_CONFIRMED,
    COMMITMENT_FINALIZED,
    ParsedAccount,
    TokenAccountBalance,
    TransactionRecord,
    token_balances_from_json,
)
from soldracula.runtime.structured_log import log_event

Json = Dict[str, Any]

log = logging.getLogger("soldracula.ledger")

# A status at a stronger level also satisfies a weaker request.
_COMMITMENT_RANK = {"processed": 0, COMMITMENT_CONFIRMED: 1, COMMITMENT_FINALIZED: 2}


class LedgerRpcError(Exception):
    """JSON-RPC error object or transport failure talking to the ledger."""

    def __init__(self, method: str, message: str, code: Optional[int] = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.message = message
        self.code = code


class LedgerClient:
    """Read-only async client for the ledger's JSON-RPC API.

    Every call is a suspension point; nothing here writes ledger state.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        commitment: str = COMMITMENT_CONFIRMED,
        timeout_s: float = 30.0,
        confirm_timeout_s: float = 60.0,
        poll_interval_s: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._confirm_timeout_s = float(confirm_timeout_s)
        self._poll_interval_s = max(0.0, float(poll_interval_s))
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self.rpc_url, json=body)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as e:
            raise LedgerRpcError(method, f"transport error: {e}") from e
        except ValueError as e:
            raise LedgerRpcError(method, "response was not JSON") from e

        if not isinstance(payload, dict):
            raise LedgerRpcError(method, "response was not a JSON object")

        err = payload.get("error")
        if err is not None:
            if isinstance(err, dict):
                raise LedgerRpcError(method, str(err.get("message") or "rpc error"), err.get("code"))
            raise LedgerRpcError(method, str(err))

        return payload.get("result")

    async def get_signature_status(self, signature: str) -> Optional[Json]:
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, list) or not value:
            return None
        st = value[0]
        return st if isinstance(st, dict) else None

    async def confirm_transaction(self, signature: str, *, commitment: Optional[str] = None) -> Optional[Json]:
        """Wait until `signature` reaches `commitment`.

        Returns the signature status, or None if it did not get there before
        the confirm timeout.
        """
        want = _COMMITMENT_RANK.get(commitment or self.commitment, 1)
        deadline = time.monotonic() + self._confirm_timeout_s

        while True:
            st = await self.get_signature_status(signature)
            if st is not None:
                got = _COMMITMENT_RANK.get(str(st.get("confirmationStatus") or ""), -1)
                if got >= want:
                    log_event(log, "tx_confirmed", signature=signature, status=st.get("confirmationStatus"))
                    return st

            if time.monotonic() >= deadline:
                log_event(log, "tx_confirm_timeout", signature=signature, timeout_s=self._confirm_timeout_s)
                return None
            await asyncio.sleep(self._poll_interval_s)

    async def get_parsed_transaction(self, signature: str) -> Optional[TransactionRecord]:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if not isinstance(result, dict):
            return None
        return TransactionRecord.from_json(signature, result)

    async def get_token_largest_accounts(self, mint: str) -> List[TokenAccountBalance]:
        result = await self._call("getTokenLargestAccounts", [mint, {"commitment": self.commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        return token_balances_from_json(value)

    async def get_parsed_account_info(self, address: str) -> Optional[ParsedAccount]:
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            return None
        return ParsedAccount.from_json(address, value)
