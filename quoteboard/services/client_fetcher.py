from __future__ import annotations

import concurrent.futures
import math
from numbers import Real

from quoteboard.integrations.finnhub_rest import to_percent_change
from quoteboard.schemas.quote import QuoteRecord


def is_valid_price(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value) and value > 0


class ClientQuoteFetcher:
    """Concurrent fan-out quote fetch for a small symbol list, one request per symbol."""

    def __init__(self, *, rest_client, max_workers: int | None = None) -> None:
        self.rest_client = rest_client
        self.max_workers = max_workers
        self.batches = 0
        self.last_batch_target = 0
        self.last_batch_final = 0

    def _fetch_one(self, symbol: str) -> QuoteRecord | None:
        try:
            payload = self.rest_client.get_quote(symbol)
        except Exception as exc:
            print(f"[QUOTE][fanout_symbol_error] symbol={symbol} error={exc}", flush=True)
            return None

        # upstream answers rate-limited or unknown symbols with zeros
        price = payload.get("c")
        if not is_valid_price(price):
            return None
        return QuoteRecord(
            symbol=symbol,
            price=float(price),
            percent_change=to_percent_change(payload.get("dp")),
        )

    def fetch_quotes(self, symbols: list[str]) -> list[QuoteRecord]:
        self.rest_client.require_api_key()
        if not symbols:
            return []

        slots: list[QuoteRecord | None] = [None] * len(symbols)
        workers = self.max_workers or len(symbols)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="quote-fanout") as executor:
            futures = {executor.submit(self._fetch_one, symbol): index for index, symbol in enumerate(symbols)}
            for future in concurrent.futures.as_completed(futures):
                slots[futures[future]] = future.result()

        out = [row for row in slots if row is not None]
        self.batches += 1
        self.last_batch_target = len(symbols)
        self.last_batch_final = len(out)
        print(
            f"[QUOTE][fanout_done] target_count={len(symbols)} final_count={len(out)}",
            flush=True,
        )
        return out
