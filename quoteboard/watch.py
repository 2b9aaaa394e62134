"""Terminal watcher for the direct-to-upstream client variant.

Polls a small symbol list straight from Finnhub with the concurrent fetcher and prints
a table on every successful poll. Uses ``FINNHUB_API_KEY`` and ``CLIENT_SYMBOLS``.
"""

from __future__ import annotations

import argparse
import os
import time

from quoteboard.config.settings import DEFAULT_CLIENT_SYMBOLS, parse_symbols
from quoteboard.errors import ConfigurationError
from quoteboard.integrations.finnhub_rest import FinnhubRestClient
from quoteboard.schemas.quote import QuoteRecord
from quoteboard.services.client_fetcher import ClientQuoteFetcher
from quoteboard.services.quote_poller import QuotePoller

SORT_KEYS = ("symbol", "price", "percentChange")


def sort_rows(rows: list[QuoteRecord], key: str, descending: bool = False) -> list[QuoteRecord]:
    if key == "symbol":
        return sorted(rows, key=lambda r: r.symbol, reverse=descending)
    if key == "price":
        return sorted(rows, key=lambda r: r.price, reverse=descending)
    return sorted(
        rows,
        key=lambda r: r.percent_change if r.percent_change is not None else 0.0,
        reverse=descending,
    )


def format_table(rows: list[QuoteRecord]) -> str:
    lines = [f"{'SYMBOL':<8}{'PRICE':>12}{'CHANGE %':>12}"]
    for row in rows:
        change = "-" if row.percent_change is None else f"{row.percent_change:+.2f}"
        lines.append(f"{row.symbol:<8}{row.price:>12.2f}{change:>12}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Watch live quotes from Finnhub.")
    parser.add_argument("--symbols", help="comma-separated symbols (default: CLIENT_SYMBOLS env)")
    parser.add_argument("--interval", type=float, default=30.0, help="poll interval in seconds")
    parser.add_argument("--sort", choices=SORT_KEYS, default="symbol")
    parser.add_argument("--desc", action="store_true", help="sort descending")
    parser.add_argument("--once", action="store_true", help="poll once and exit")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    symbols = parse_symbols(args.symbols or os.getenv("CLIENT_SYMBOLS"), DEFAULT_CLIENT_SYMBOLS)
    fetcher = ClientQuoteFetcher(rest_client=FinnhubRestClient(os.getenv("FINNHUB_API_KEY")))

    def render(status: dict) -> None:
        if status["error"]:
            print(status["error"], flush=True)
        if poller.rows:
            print(format_table(sort_rows(poller.rows, args.sort, args.desc)), flush=True)

    poller = QuotePoller(fetcher=fetcher, symbols=symbols, interval_sec=args.interval, on_update=render)

    if args.once:
        try:
            poller.poll_once()
        except ConfigurationError as exc:
            print(f"configuration error: {exc}", flush=True)
            return 2
        return 0 if poller.rows else 1

    poller.start()
    try:
        while poller.is_running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        poller.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
