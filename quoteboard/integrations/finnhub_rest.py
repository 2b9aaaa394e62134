from __future__ import annotations

import math
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from quoteboard.errors import MissingApiKeyError


def to_percent_change(value: Any) -> Optional[float]:
    """Pass ``dp`` through; JSON cannot carry NaN so non-finite values become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


class FinnhubRestClient:
    """Minimal Finnhub REST client for quote and candle retrieval."""

    DEFAULT_BASE_URL = "https://finnhub.io/api/v1"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: Optional[str] = None,
        session: Optional[Any] = None,
        timeout: float = 5.0,
        min_interval_sec: float = 0.0,
        sleep_fn: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.session = session or requests
        self.timeout = timeout
        self.min_interval_sec = min_interval_sec
        self.sleep_fn = sleep_fn
        self.clock = clock
        self._pace_lock = threading.Lock()
        self._last_call_at: float | None = None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def require_api_key(self) -> str:
        if not self.api_key:
            raise MissingApiKeyError()
        return self.api_key

    def _pace(self) -> None:
        """Space requests from every caller sharing this key at least ``min_interval_sec`` apart."""
        if self.min_interval_sec <= 0:
            return
        with self._pace_lock:
            if self._last_call_at is not None:
                wait = self._last_call_at + self.min_interval_sec - self.clock()
                if wait > 0:
                    self.sleep_fn(wait)
            self._last_call_at = self.clock()

    def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        token = self.require_api_key()
        self._pace()
        response = self.session.get(
            f"{self.base_url}{path}",
            params={**params, "token": token},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"unexpected payload type for {path}: {type(payload).__name__}")
        return payload

    def get_quote(self, symbol: str) -> Dict[str, Any]:
        return self._get_json("/quote", {"symbol": symbol})

    def get_candles(self, symbol: str, resolution: str, from_ts: int, to_ts: int) -> Dict[str, Any]:
        return self._get_json(
            "/stock/candle",
            {
                "symbol": symbol,
                "resolution": resolution,
                "from": int(from_ts),
                "to": int(to_ts),
            },
        )
