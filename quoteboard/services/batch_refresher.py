from __future__ import annotations

import math
import threading
import time
from typing import Callable

from quoteboard.integrations.finnhub_rest import to_percent_change
from quoteboard.schemas.quote import QuoteRecord
from quoteboard.services.quote_cache import QuoteCache, now_ms


class BatchQuoteRefresher:
    """Sequential, rate-limited refresh of the full symbol universe into a shared cache.

    Upstream allows roughly one request per ``delay_sec``, so symbols are fetched one at a
    time with an unconditional pause after each. Cycles are single-flight: callers that
    find the cache stale while another cycle is running wait for it instead of starting
    their own.
    """

    def __init__(
        self,
        *,
        rest_client,
        cache: QuoteCache,
        symbols: list[str],
        delay_sec: float = 1.1,
        stale_after_ms: int = 60_000,
        sleep_fn: Callable[[float], None] = time.sleep,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        if not symbols:
            raise ValueError("symbol universe must not be empty")
        self.rest_client = rest_client
        self.cache = cache
        self.symbols = list(symbols)
        self.delay_sec = delay_sec
        self.stale_after_ms = stale_after_ms
        self.sleep_fn = sleep_fn
        self.clock_ms = clock_ms

        self._refresh_lock = threading.Lock()
        self._in_flight = False
        self.cycles_completed = 0
        self.coalesced_requests = 0
        self.last_cycle_target = 0
        self.last_cycle_ok = 0
        self.last_cycle_skipped = 0
        self.last_cycle_duration_ms = 0

    def needs_refresh(self, now: int | None = None) -> bool:
        entry = self.cache.snapshot()
        ref = self.clock_ms() if now is None else now
        return (ref - entry.fetched_at_ms) > self.stale_after_ms or not entry.results

    def _fetch_one(self, symbol: str) -> QuoteRecord | None:
        try:
            payload = self.rest_client.get_quote(symbol)
            price = payload.get("c")
            # zero/missing price means upstream had nothing for this symbol
            if not price:
                print(f"[QUOTE][symbol_skip] symbol={symbol} reason=empty_price", flush=True)
                return None
            value = float(price)
            # NaN is truthy here but cannot be served as JSON
            if not math.isfinite(value):
                print(f"[QUOTE][symbol_skip] symbol={symbol} reason=non_finite_price", flush=True)
                return None
            return QuoteRecord(
                symbol=symbol,
                price=value,
                percent_change=to_percent_change(payload.get("dp")),
            )
        except Exception as exc:
            print(f"[QUOTE][symbol_skip] symbol={symbol} reason=error error={exc}", flush=True)
            return None

    def _run_cycle(self) -> list[QuoteRecord]:
        self.rest_client.require_api_key()
        self._in_flight = True
        started = self.clock_ms()
        print(f"[QUOTE][refresh_start] target_count={len(self.symbols)}", flush=True)
        try:
            rows: list[QuoteRecord] = []
            for symbol in self.symbols:
                record = self._fetch_one(symbol)
                if record is not None:
                    rows.append(record)
                self.sleep_fn(self.delay_sec)

            finished = self.clock_ms()
            self.cache.replace(rows, fetched_at_ms=finished)
        finally:
            self._in_flight = False

        self.cycles_completed += 1
        self.last_cycle_target = len(self.symbols)
        self.last_cycle_ok = len(rows)
        self.last_cycle_skipped = len(self.symbols) - len(rows)
        self.last_cycle_duration_ms = finished - started
        print(
            "[QUOTE][refresh_done] "
            f"target_count={self.last_cycle_target} ok_count={self.last_cycle_ok} "
            f"skipped_count={self.last_cycle_skipped} duration_ms={self.last_cycle_duration_ms}",
            flush=True,
        )
        return rows

    def refresh_cycle(self) -> list[QuoteRecord]:
        with self._refresh_lock:
            return self._run_cycle()

    def get_quotes(self) -> list[QuoteRecord]:
        # read before the staleness check so a cycle that finishes in between is detected
        observed = self.cycles_completed
        if self.needs_refresh():
            with self._refresh_lock:
                if self.cycles_completed == observed:
                    self._run_cycle()
                else:
                    self.coalesced_requests += 1
                    print(f"[QUOTE][refresh_coalesced] cycles_completed={self.cycles_completed}", flush=True)
        return self.cache.list_all()

    def metrics(self) -> dict[str, int | bool]:
        entry = self.cache.snapshot()
        return {
            "cached_symbols": len(entry.results),
            "fetched_at_ms": entry.fetched_at_ms,
            "refresh_in_flight": self._in_flight,
            "cycles_completed": self.cycles_completed,
            "coalesced_requests": self.coalesced_requests,
            "last_cycle_target": self.last_cycle_target,
            "last_cycle_ok": self.last_cycle_ok,
            "last_cycle_skipped": self.last_cycle_skipped,
            "last_cycle_duration_ms": self.last_cycle_duration_ms,
        }
