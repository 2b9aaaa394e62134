from __future__ import annotations

import threading
import time
from typing import Callable

from quoteboard.errors import ConfigurationError
from quoteboard.schemas.quote import QuoteRecord

EMPTY_RESULT_MESSAGE = (
    "Stock data unavailable (API rate limit or network error). "
    "Please wait 30 seconds and try again."
)


class QuotePoller:
    """Re-runs the fan-out fetch on an interval; a tick that lands mid-fetch is dropped, not queued."""

    def __init__(
        self,
        *,
        fetcher,
        symbols: list[str],
        interval_sec: float = 30.0,
        on_update: Callable[[dict], None] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.on_update = on_update
        self.symbols = list(symbols)
        self.interval_sec = interval_sec
        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self.rows: list[QuoteRecord] = []
        self.last_updated: int | None = None
        self.error: str | None = None
        self.polls = 0
        self.skipped = 0

    def poll_once(self) -> list[QuoteRecord] | None:
        if not self._in_flight.acquire(blocking=False):
            with self._state_lock:
                self.skipped += 1
            print("[POLL][skip_in_flight]", flush=True)
            return None
        # state is written before the guard is released so an older poll cannot overwrite a newer one
        try:
            rows = self.fetcher.fetch_quotes(self.symbols)
            with self._state_lock:
                self.polls += 1
                if not rows:
                    self.error = EMPTY_RESULT_MESSAGE
                    print(f"[POLL][empty_result] target_count={len(self.symbols)}", flush=True)
                else:
                    self.rows = rows
                    self.last_updated = int(time.time())
                    self.error = None
        finally:
            self._in_flight.release()
        if self.on_update is not None:
            self.on_update(self.status())
        return rows

    def _loop(self) -> None:
        while True:
            try:
                self.poll_once()
            except ConfigurationError as exc:
                print(f"[POLL][config_error] error={exc}", flush=True)
                return
            except Exception as exc:
                print(f"[POLL][poll_error] error={exc}", flush=True)
            if self._stop_event.wait(self.interval_sec):
                return

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="quote-poller")
        self._thread.start()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)

    def status(self) -> dict:
        with self._state_lock:
            return {
                "rows": [row.model_dump(by_alias=True) for row in self.rows],
                "last_updated": self.last_updated,
                "error": self.error,
                "polls": self.polls,
                "skipped": self.skipped,
            }
