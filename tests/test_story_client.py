from __future__ import annotations

import asyncio
import json
from typing import List

import httpx
import pytest

from soldracula.crypto.wallet import Wallet, verify_b58_signature
from soldracula.runtime.bootstrap import writer_metadata_for
from soldracula.story.client import SIGNATURE_HEADER, WRITER_HEADER, StoryApiError, StoryWriterClient
from soldracula.story.script import DRACULA_SCRIPT
from soldracula.testing.fakes import fake_address

WALLET = Wallet.from_seed(bytes(range(32)))
BASE = "http://story.test/"


def _client(handler) -> StoryWriterClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StoryWriterClient(BASE, WALLET, client=http)


def test_append_item_create_posts_signed_item() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"signature": "5xyz", "commitment": "finalized"})

    asset = fake_address(3)
    handle = asyncio.run(_client(handler).append_item_create(asset, DRACULA_SCRIPT[0]))

    assert handle.signature == "5xyz"
    assert handle.commitment == "finalized"

    req = seen[0]
    assert req.url.path == f"/v1/assets/{asset}/items"
    body = json.loads(req.content)
    assert body["confirmation"] == {"commitment": "finalized"}
    assert body["item"]["type"] == "item"
    assert body["item"]["display"]["label"] == "Richter:"

    assert req.headers[WRITER_HEADER] == WALLET.address
    assert verify_b58_signature(message=req.content, sig=req.headers[SIGNATURE_HEADER], address=WALLET.address)


def test_rejected_write_raises_story_api_error() -> None:
    client = _client(lambda r: httpx.Response(409, text="already initialized"))
    with pytest.raises(StoryApiError) as ei:
        asyncio.run(client.initialize())
    assert ei.value.status_code == 409
    assert ei.value.message == "already initialized"


def test_append_without_signature_is_an_error() -> None:
    client = _client(lambda r: httpx.Response(200, json={"ok": True}))
    with pytest.raises(StoryApiError):
        asyncio.run(client.append_item_create(fake_address(3), DRACULA_SCRIPT[0]))


def test_writer_metadata_uses_wire_names() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    asyncio.run(_client(handler).create_writer_metadata(writer_metadata_for(WALLET.address)))

    body = json.loads(seen[0].content)
    assert seen[0].url.path == "/v1/writers"
    assert body["writerKey"] == WALLET.address
    assert body["systemValidated"] is False
    assert body["baseUrl"] == ""
    assert body["metadata"] == "{}"
