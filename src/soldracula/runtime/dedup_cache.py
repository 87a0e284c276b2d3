from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional


class DedupCache:
    """In-memory txid -> processed map with a fixed TTL.

    Entries are only ever created after a full successful append and leave
    only by expiring. There is no size cap: dropping a live entry would let
    a replayed txid run the script again. Expired entries are swept on
    insert at most once a minute. Safe for concurrent readers and writers.

    Keyed by transaction id, not by asset: a different transaction naming the
    same asset is not blocked here.
    """

    def __init__(
        self,
        *,
        ttl_s: float = 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if float(ttl_s) <= 0:
            raise ValueError("ttl_s must be > 0")
        self._ttl_s = float(ttl_s)
        self._clock = clock
        self._lock = threading.Lock()
        self._sweep_every_s = min(self._ttl_s, 60.0)
        self._next_sweep = clock() + self._sweep_every_s
        # txid -> (processed, expires_at)
        self._entries: Dict[str, tuple[bool, float]] = {}

    def get(self, txid: str) -> Optional[bool]:
        now = self._clock()
        with self._lock:
            hit = self._entries.get(txid)
            if hit is None:
                return None
            processed, expires_at = hit
            if expires_at <= now:
                self._entries.pop(txid, None)
                return None
            return processed

    def is_processed(self, txid: str) -> bool:
        return bool(self.get(txid))

    def mark_processed(self, txid: str) -> None:
        now = self._clock()
        with self._lock:
            self._entries[txid] = (True, now + self._ttl_s)
            if now >= self._next_sweep:
                self._prune(now)

    def prune(self) -> int:
        """Drop expired entries; returns how many were removed."""
        with self._lock:
            return self._prune(self._clock())

    def _prune(self, now: float) -> int:
        self._next_sweep = now + self._sweep_every_s
        stale = [k for k, (_, exp) in self._entries.items() if exp <= now]
        for k in stale:
            self._entries.pop(k, None)
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
