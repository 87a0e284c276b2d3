from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from soldracula.config import ServiceConfig
from soldracula.crypto.wallet import Wallet
from soldracula.ledger.client import LedgerClient
from soldracula.runtime.coordinator import AppendCoordinator
from soldracula.runtime.dedup_cache import DedupCache
from soldracula.runtime.verifier import TransactionVerifier
from soldracula.story.client import ConfirmationHandle, StoryWriterClient


@dataclass
class ServiceContext:
    """Process-wide collaborators, built once at startup.

    The wallet and ledger connection are read-only after construction; the
    dedup cache is the only shared mutable state.
    """

    config: ServiceConfig
    wallet: Wallet
    ledger: Any
    story: Any
    cache: DedupCache
    verifier: TransactionVerifier
    coordinator: AppendCoordinator

    @classmethod
    def build(
        cls,
        config: ServiceConfig,
        wallet: Wallet,
        *,
        ledger: Optional[Any] = None,
        story: Optional[Any] = None,
        cache: Optional[DedupCache] = None,
    ) -> "ServiceContext":
        """Wire components; pass ledger/story/cache to substitute test doubles."""
        if ledger is None:
            ledger = LedgerClient(
                config.rpc_url,
                timeout_s=config.http_timeout_s,
                confirm_timeout_s=config.confirm_timeout_s,
            )
        if story is None:
            story = StoryWriterClient(config.story_api_url, wallet, storage_network=config.storage_network)
        if cache is None:
            cache = DedupCache(ttl_s=config.dedup_ttl_s)

        return cls(
            config=config,
            wallet=wallet,
            ledger=ledger,
            story=story,
            cache=cache,
            verifier=TransactionVerifier(ledger, wallet.address),
            coordinator=AppendCoordinator(story, cache, serialize_assets=config.serialize_asset_appends),
        )

    @classmethod
    def from_config(cls, config: ServiceConfig) -> "ServiceContext":
        if not config.wallet_path:
            raise ValueError("wallet path is not configured (set ANCHOR_WALLET or SOLDRACULA_WALLET_PATH)")
        return cls.build(config, Wallet.from_secret_file(config.wallet_path))

    async def handle_submission(self, txid: str) -> ConfirmationHandle:
        """Dedup pre-check, then verify, then append the script."""
        self.coordinator.check_not_processed(txid)
        asset = await self.verifier.verify(txid)
        return await self.coordinator.process(txid, asset)

    async def aclose(self) -> None:
        for client in (self.ledger, self.story):
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()
