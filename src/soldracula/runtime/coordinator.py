from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional, Sequence

from soldracula.ledger.types import COMMITMENT_FINALIZED
from soldracula.runtime.dedup_cache import DedupCache
from soldracula.runtime.errors import AppendError
from soldracula.runtime.metrics import inc_counter
from soldracula.runtime.structured_log import log_event
from soldracula.story.client import ConfirmationHandle, StoryApiError
from soldracula.story.script import DRACULA_SCRIPT, StoryItem

log = logging.getLogger("soldracula.coordinator")


@dataclass
class AppendProgress:
    """Step recorder for one run of the script against one asset."""

    txid: str
    asset: str
    total: int
    completed: int = 0
    failed_step: Optional[int] = None
    last_handle: Optional[ConfirmationHandle] = None

    @property
    def done(self) -> bool:
        return self.completed == self.total


class AppendCoordinator:
    """Append the fixed script to a verified asset's story, in order.

    Each append is awaited to finalized confirmation before the next one is
    issued. A failure stops the run without retrying and without marking the
    txid, so a later retry runs the whole script again from step 1 and can
    duplicate the items that already landed.

    serialize_assets=True adds per-asset mutual exclusion so two runs against
    the same asset cannot interleave. Off by default.
    """

    def __init__(
        self,
        story: Any,
        cache: DedupCache,
        *,
        script: Sequence[StoryItem] = DRACULA_SCRIPT,
        commitment: str = COMMITMENT_FINALIZED,
        serialize_assets: bool = False,
    ) -> None:
        self._story = story
        self._cache = cache
        self._script = tuple(script)
        if not self._script:
            raise ValueError("script must not be empty")
        self._commitment = commitment
        self._serialize_assets = bool(serialize_assets)

        self._progress: Dict[str, AppendProgress] = {}
        self._asset_locks: Dict[str, asyncio.Lock] = {}
        self._asset_lock_refs: Dict[str, int] = {}

    @property
    def script(self) -> tuple[StoryItem, ...]:
        return self._script

    def check_not_processed(self, txid: str) -> None:
        """Cheap pre-check run before any verification work."""
        if self._cache.is_processed(txid):
            inc_counter("rejected_already_processed")
            raise AppendError.already_processed(txid)

    def progress(self, txid: str) -> Optional[AppendProgress]:
        """Step recorder of the run for txid currently in flight, if any."""
        return self._progress.get(txid)

    async def process(self, txid: str, asset: str) -> ConfirmationHandle:
        self.check_not_processed(txid)

        if not self._serialize_assets:
            return await self._run(txid, asset)

        async with self._asset_lock(asset):
            return await self._run(txid, asset)

    @asynccontextmanager
    async def _asset_lock(self, asset: str) -> AsyncIterator[None]:
        lock = self._asset_locks.get(asset)
        if lock is None:
            lock = asyncio.Lock()
            self._asset_locks[asset] = lock
        self._asset_lock_refs[asset] = self._asset_lock_refs.get(asset, 0) + 1
        try:
            async with lock:
                yield
        finally:
            refs = self._asset_lock_refs[asset] - 1
            if refs <= 0:
                self._asset_lock_refs.pop(asset, None)
                self._asset_locks.pop(asset, None)
            else:
                self._asset_lock_refs[asset] = refs

    async def _run(self, txid: str, asset: str) -> ConfirmationHandle:
        progress = AppendProgress(txid=txid, asset=asset, total=len(self._script))
        self._progress[txid] = progress
        try:
            await self._append_all(progress)
        finally:
            # Only in-flight runs are tracked; failure details ride on AppendError.
            if self._progress.get(txid) is progress:
                del self._progress[txid]

        self._cache.mark_processed(txid)
        inc_counter("requests_processed")
        log_event(log, "script_appended", txid=txid, asset=asset, signature=progress.last_handle.signature)
        return progress.last_handle

    async def _append_all(self, progress: AppendProgress) -> None:
        txid, asset = progress.txid, progress.asset
        for step, item in enumerate(self._script, start=1):
            try:
                handle = await self._story.append_item_create(asset, item, commitment=self._commitment)
            except StoryApiError as e:
                progress.failed_step = step
                inc_counter("append_failed")
                log_event(
                    log,
                    "append_failed",
                    txid=txid,
                    asset=asset,
                    step=step,
                    completed=progress.completed,
                    error=str(e),
                )
                raise AppendError.append_failure(txid, step=step, total=progress.total, reason=str(e)) from e

            progress.completed = step
            progress.last_handle = handle
            inc_counter("append_items")
            log_event(log, "append_ok", txid=txid, asset=asset, step=step, signature=handle.signature)
