from __future__ import annotations

import time
from datetime import datetime, tzinfo
from typing import Callable

from quoteboard.schemas.quote import CandlePoint

DAY_SEC = 60 * 60 * 24
MIN_POINTS = 5

# finest first; the last tier is returned even when it is short
CANDLE_TIERS: tuple[tuple[str, int], ...] = (
    ("5", DAY_SEC * 1),
    ("15", DAY_SEC * 2),
    ("D", DAY_SEC * 35),
)


def format_label(unix_sec: int, resolution: str, tz: tzinfo | None = None) -> str:
    dt = datetime.fromtimestamp(unix_sec, tz=tz)
    if resolution == "D":
        return f"{dt.month}/{dt.day}"
    return f"{dt.hour}:{dt.minute:02d}"


class CandleFetcher:
    """Chart points for one symbol, falling back to coarser resolutions when data is thin."""

    def __init__(
        self,
        *,
        rest_client,
        clock: Callable[[], float] = time.time,
        tz: tzinfo | None = None,
        tiers: tuple[tuple[str, int], ...] = CANDLE_TIERS,
        min_points: int = MIN_POINTS,
    ) -> None:
        self.rest_client = rest_client
        self.clock = clock
        self.tz = tz
        self.tiers = tiers
        self.min_points = min_points

    def _fetch_tier(self, symbol: str, resolution: str, from_ts: int, to_ts: int) -> list[CandlePoint]:
        try:
            payload = self.rest_client.get_candles(symbol, resolution, from_ts, to_ts)
            if payload.get("s") != "ok":
                return []
            closes = payload.get("c")
            times = payload.get("t")
            if not isinstance(closes, list) or not isinstance(times, list):
                return []
            return [
                CandlePoint(time=format_label(int(unix), resolution, self.tz), close=float(close))
                for unix, close in zip(times, closes)
            ]
        except Exception as exc:
            print(
                f"[CANDLE][tier_error] symbol={symbol} resolution={resolution} error={exc}",
                flush=True,
            )
            return []

    def fetch_candles(self, symbol: str) -> list[CandlePoint]:
        self.rest_client.require_api_key()
        now = int(self.clock())

        points: list[CandlePoint] = []
        for resolution, lookback_sec in self.tiers:
            points = self._fetch_tier(symbol, resolution, now - lookback_sec, now)
            print(
                f"[CANDLE][tier_result] symbol={symbol} resolution={resolution} points={len(points)}",
                flush=True,
            )
            if len(points) >= self.min_points:
                return points
        return points
