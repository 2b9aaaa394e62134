from __future__ import annotations

import threading
import time
from typing import Iterable

from quoteboard.schemas.quote import QuoteCacheEntry, QuoteRecord


def now_ms() -> int:
    return int(time.time() * 1000)


class QuoteCache:
    """Process-wide result set. Writers swap the whole entry; readers never see a partial one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entry = QuoteCacheEntry()

    def snapshot(self) -> QuoteCacheEntry:
        with self._lock:
            return self._entry

    def replace(self, results: Iterable[QuoteRecord], fetched_at_ms: int) -> QuoteCacheEntry:
        entry = QuoteCacheEntry(results=tuple(results), fetched_at_ms=int(fetched_at_ms))
        with self._lock:
            self._entry = entry
        return entry

    def list_all(self) -> list[QuoteRecord]:
        return list(self.snapshot().results)


quote_cache = QuoteCache()
