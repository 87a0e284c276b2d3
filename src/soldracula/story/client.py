from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from soldracula.crypto.wallet import Wallet
from soldracula.ledger.types import COMMITMENT_FINALIZED
from soldracula.runtime.structured_log import log_event
from soldracula.story.script import StoryItem

Json = Dict[str, Any]

log = logging.getLogger("soldracula.story")

WRITER_HEADER = "x-solstory-writer"
SIGNATURE_HEADER = "x-solstory-signature"
STORAGE_HEADER = "x-solstory-storage-network"


class StoryApiError(Exception):
    """Rejected or failed call to the story write API."""

    def __init__(self, op: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{op}: {message}")
        self.op = op
        self.message = message
        self.status_code = status_code


class WriterMetadata(BaseModel):
    """Registration record identifying this service as a story writer."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    writer_key: str = Field(..., alias="writerKey", description="Base58 address of the writer")
    label: str
    description: str
    url: str
    cdn: str = ""
    logo: str = ""
    base_url: str = Field(default="", alias="baseUrl")
    metadata: str = "{}"
    has_extended_metadata: bool = Field(default=False, alias="hasExtendedMetadata")
    system_validated: bool = Field(default=False, alias="systemValidated")
    api_version: int = Field(default=1, alias="apiVersion")
    visible: bool = True


@dataclass(frozen=True)
class ConfirmationHandle:
    """What the write API hands back once a write reached its commitment."""

    signature: str
    commitment: str
    raw: Json = field(default_factory=dict)

    def to_json(self) -> Json:
        out = dict(self.raw)
        out.setdefault("signature", self.signature)
        out.setdefault("commitment", self.commitment)
        return out


def _canonical_body(body: Json) -> bytes:
    return json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class StoryWriterClient:
    """Async client for the external story write API.

    Each write is signed with the service wallet over the exact request bytes.
    No client-side timeout by default: appends block until the API reports
    the requested commitment.
    """

    def __init__(
        self,
        base_url: str,
        wallet: Wallet,
        *,
        storage_network: str = "devnet",
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.wallet = wallet
        self.storage_network = storage_network
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, op: str, path: str, body: Json) -> Json:
        data = _canonical_body(body)
        headers = {
            "content-type": "application/json",
            WRITER_HEADER: self.wallet.address,
            SIGNATURE_HEADER: self.wallet.sign_b58(data),
            STORAGE_HEADER: self.storage_network,
        }
        try:
            resp = await self._client.post(f"{self.base_url}{path}", content=data, headers=headers)
        except httpx.HTTPError as e:
            raise StoryApiError(op, f"transport error: {e}") from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise StoryApiError(op, resp.text.strip()[:300] or f"http_{resp.status_code}", resp.status_code)

        try:
            out = resp.json()
        except ValueError as e:
            raise StoryApiError(op, "response was not JSON", resp.status_code) from e
        return out if isinstance(out, dict) else {"result": out}

    async def initialize(self) -> Json:
        """One-time on-chain setup with this wallet as authority."""
        return await self._post("initialize", "/v1/initialize", {"authority": self.wallet.address})

    async def create_writer_metadata(self, meta: WriterMetadata) -> Json:
        body = meta.model_dump(by_alias=True)
        out = await self._post("create_writer_metadata", "/v1/writers", body)
        log_event(log, "writer_metadata_registered", writer=meta.writer_key, label=meta.label)
        return out

    async def append_item_create(
        self,
        asset_id: str,
        item: StoryItem,
        *,
        commitment: str = COMMITMENT_FINALIZED,
    ) -> ConfirmationHandle:
        body = {"item": item.to_json(), "confirmation": {"commitment": commitment}}
        out = await self._post("append_item_create", f"/v1/assets/{asset_id}/items", body)

        sig = str(out.get("signature") or out.get("txid") or "").strip()
        if not sig:
            raise StoryApiError("append_item_create", "response missing signature")
        return ConfirmationHandle(signature=sig, commitment=str(out.get("commitment") or commitment), raw=out)
