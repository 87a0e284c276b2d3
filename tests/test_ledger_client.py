from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import httpx
import pytest

from soldracula.ledger.client import LedgerClient, LedgerRpcError
from soldracula.testing.fakes import fake_address, fake_signature, transfer_tx_json

RPC = "http://ledger.test"


def _client(results: Dict[str, Any], seen: List[Dict[str, Any]], **kwargs) -> LedgerClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        result = results[body["method"]]
        if callable(result):
            result = result(body)
        if isinstance(result, Exception):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32602, "message": str(result)}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LedgerClient(RPC, client=http, poll_interval_s=0, **kwargs)


def test_get_parsed_transaction_requests_json_parsed_at_confirmed() -> None:
    sig = fake_signature(1)
    owner = fake_address(1)
    tx = transfer_tx_json(source=owner, destination=fake_address(2), memo=fake_address(3))
    seen: List[Dict[str, Any]] = []
    client = _client({"getTransaction": tx}, seen)

    rec = asyncio.run(client.get_parsed_transaction(sig))

    assert rec is not None
    assert rec.signature == sig
    assert rec.instructions[0].program == "system"
    assert rec.instructions[1].parsed == fake_address(3)
    assert seen[0]["params"][1]["encoding"] == "jsonParsed"
    assert seen[0]["params"][1]["commitment"] == "confirmed"


def test_missing_transaction_is_none() -> None:
    client = _client({"getTransaction": None}, [])
    assert asyncio.run(client.get_parsed_transaction(fake_signature(1))) is None


def test_confirm_transaction_polls_until_confirmed() -> None:
    statuses = iter([[None], [{"confirmationStatus": "processed"}], [{"confirmationStatus": "finalized"}]])
    seen: List[Dict[str, Any]] = []
    client = _client({"getSignatureStatuses": lambda _b: {"value": next(statuses)}}, seen)

    st = asyncio.run(client.confirm_transaction(fake_signature(1)))

    assert st == {"confirmationStatus": "finalized"}
    assert len(seen) == 3


def test_confirm_transaction_times_out_as_none() -> None:
    client = _client({"getSignatureStatuses": {"value": [None]}}, [], confirm_timeout_s=0.0)
    assert asyncio.run(client.confirm_transaction(fake_signature(1))) is None


def test_largest_accounts_and_account_owner() -> None:
    mint, holder, owner = fake_address(3), fake_address(4), fake_address(1)
    client = _client(
        {
            "getTokenLargestAccounts": {"value": [{"address": holder, "amount": "1", "decimals": 0}]},
            "getAccountInfo": {
                "value": {"data": {"program": "spl-token", "parsed": {"info": {"owner": owner, "mint": mint}}}}
            },
        },
        [],
    )

    holders = asyncio.run(client.get_token_largest_accounts(mint))
    assert [h.address for h in holders] == [holder]

    acct = asyncio.run(client.get_parsed_account_info(holder))
    assert acct is not None
    assert acct.owner == owner
    assert acct.mint == mint


def test_rpc_error_object_raises() -> None:
    client = _client({"getTokenLargestAccounts": ValueError("Invalid param: not a Token mint")}, [])
    with pytest.raises(LedgerRpcError) as ei:
        asyncio.run(client.get_token_largest_accounts(fake_address(3)))
    assert ei.value.code == -32602
    assert "not a Token mint" in ei.value.message


def test_http_failure_raises_rpc_error() -> None:
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503, text="down")))
    client = LedgerClient(RPC, client=http)
    with pytest.raises(LedgerRpcError):
        asyncio.run(client.get_parsed_account_info(fake_address(4)))
