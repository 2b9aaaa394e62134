import os
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from pydantic import ValidationError

from quoteboard.config.settings import Settings
from quoteboard.errors import MissingApiKeyError
from quoteboard.main import app
from quoteboard.services.batch_refresher import BatchQuoteRefresher
from quoteboard.services.candle_fetcher import CandleFetcher
from quoteboard.services.quote_cache import QuoteCache


class StubRestClient:
    def __init__(self, script: dict | None = None, api_key: str = "key") -> None:
        self.script = script or {}
        self.api_key = api_key
        self.calls: list[str] = []
        self.candle_calls = 0

    def require_api_key(self) -> str:
        if not self.api_key:
            raise MissingApiKeyError()
        return self.api_key

    def get_quote(self, symbol: str) -> dict:
        self.calls.append(symbol)
        value = self.script.get(symbol, {"c": 100.0, "dp": 1.5})
        if isinstance(value, Exception):
            raise value
        return value

    def get_candles(self, symbol, resolution, from_ts, to_ts):
        self.candle_calls += 1
        return {"s": "ok", "c": [1.0, 2.0, 3.0, 4.0, 5.0], "t": [to_ts - i * 300 for i in range(5, 0, -1)]}


class StocksApiTest(unittest.TestCase):
    def setUp(self):
        self._saved = (app.state.batch_refresher, app.state.candle_fetcher, app.state.get_settings)
        self.rest_client = StubRestClient({"BBB": {"c": 0}, "CCC": ConnectionError("down")})
        self.refresher = BatchQuoteRefresher(
            rest_client=self.rest_client,
            cache=QuoteCache(),
            symbols=["AAPL", "BBB", "CCC", "JPM"],
            sleep_fn=lambda _: None,
        )
        app.state.batch_refresher = self.refresher
        app.state.candle_fetcher = CandleFetcher(rest_client=self.rest_client)
        self.client = TestClient(app)

    def tearDown(self):
        app.state.batch_refresher, app.state.candle_fetcher, app.state.get_settings = self._saved

    def test_stocks_returns_quote_records_and_caches(self):
        first = self.client.get("/stocks")
        second = self.client.get("/stocks")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(
            first.json(),
            [
                {"symbol": "AAPL", "price": 100.0, "percentChange": 1.5},
                {"symbol": "JPM", "price": 100.0, "percentChange": 1.5},
            ],
        )
        self.assertEqual(second.json(), first.json())
        self.assertEqual(self.rest_client.calls, ["AAPL", "BBB", "CCC", "JPM"])

    def test_total_outage_is_an_empty_200(self):
        self.rest_client.script = {s: ConnectionError("down") for s in ["AAPL", "BBB", "CCC", "JPM"]}

        res = self.client.get("/stocks")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), [])

    def test_nan_price_does_not_break_the_response(self):
        self.rest_client.script = {"BBB": {"c": float("nan"), "dp": 1.0}}

        res = self.client.get("/stocks")

        self.assertEqual(res.status_code, 200)
        self.assertEqual([row["symbol"] for row in res.json()], ["AAPL", "CCC", "JPM"])
        self.assertEqual(self.client.get("/sectors").status_code, 200)

    def test_missing_key_maps_to_503(self):
        self.rest_client.api_key = ""

        res = self.client.get("/stocks")

        self.assertEqual(res.status_code, 503)
        self.assertEqual(res.json(), {"detail": "FINNHUB_API_KEY_MISSING"})
        self.assertEqual(self.rest_client.calls, [])

    def test_unconfigured_refresher_is_503(self):
        app.state.batch_refresher = None

        res = self.client.get("/stocks")

        self.assertEqual(res.status_code, 503)
        self.assertEqual(res.json(), {"detail": "QUOTE_REFRESHER_NOT_CONFIGURED"})

    def test_sectors_aggregate_cached_quotes(self):
        res = self.client.get("/sectors")

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual([row["sector"] for row in body], ["Technology", "Financial"])
        self.assertEqual(body[0]["count"], 1)
        self.assertEqual(body[0]["avg_change"], 1.5)

    def test_candles_endpoint(self):
        res = self.client.get("/candles/aapl")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.json()), 5)
        self.assertEqual(set(res.json()[0]), {"time", "close"})
        self.assertEqual(self.rest_client.candle_calls, 1)

    def test_metrics_after_refresh(self):
        self.client.get("/stocks")

        res = self.client.get("/metrics/quote")

        self.assertEqual(res.status_code, 200)
        payload = res.json()
        self.assertTrue(payload["configured"])
        self.assertEqual(payload["cycles_completed"], 1)
        self.assertEqual(payload["cached_symbols"], 2)
        self.assertEqual(payload["last_cycle_target"], 4)
        self.assertEqual(payload["last_cycle_skipped"], 2)
        self.assertFalse(payload["refresh_in_flight"])

    def test_cors_allows_any_origin(self):
        res = self.client.get("/stocks", headers={"Origin": "http://localhost:5173"})

        self.assertEqual(res.headers.get("access-control-allow-origin"), "*")


class AppLifespanTest(unittest.TestCase):
    def setUp(self):
        self._saved = (app.state.batch_refresher, app.state.candle_fetcher, app.state.get_settings)

    def tearDown(self):
        app.state.batch_refresher, app.state.candle_fetcher, app.state.get_settings = self._saved

    def test_startup_binds_runtime_services_from_settings(self):
        app.state.batch_refresher = None
        app.state.candle_fetcher = None
        app.state.get_settings = lambda: Settings(
            FINNHUB_API_KEY="key-123",
            QUOTE_SYMBOLS=["AAPL", "MSFT"],
            CLIENT_SYMBOLS=["AAPL"],
            REFRESH_DELAY_SEC=2.0,
            CACHE_TTL_SEC=30,
        )

        with TestClient(app):
            refresher = app.state.batch_refresher
            self.assertIsInstance(refresher, BatchQuoteRefresher)
            self.assertEqual(refresher.symbols, ["AAPL", "MSFT"])
            self.assertEqual(refresher.delay_sec, 2.0)
            self.assertEqual(refresher.stale_after_ms, 30_000)
            self.assertEqual(refresher.rest_client.api_key, "key-123")
            self.assertIsInstance(app.state.candle_fetcher, CandleFetcher)
            self.assertEqual(refresher.rest_client.min_interval_sec, 2.0)
            self.assertIs(app.state.candle_fetcher.rest_client, refresher.rest_client)

    def test_startup_fails_fast_without_api_key(self):
        app.state.batch_refresher = None
        app.state.get_settings = Settings.from_env

        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValidationError):
                with TestClient(app):
                    pass


if __name__ == "__main__":
    unittest.main()
