from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quoteboard.api.routes import router
from quoteboard.config.settings import Settings, get_settings
from quoteboard.integrations.finnhub_rest import FinnhubRestClient
from quoteboard.services.batch_refresher import BatchQuoteRefresher
from quoteboard.services.candle_fetcher import CandleFetcher
from quoteboard.services.quote_cache import quote_cache


def _bind_runtime_services(app: FastAPI, settings: Settings) -> None:
    rest_client = FinnhubRestClient(
        settings.FINNHUB_API_KEY,
        base_url=settings.FINNHUB_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT_SEC,
        # shared by the refresher and the candle route so both stay under one rate ceiling
        min_interval_sec=settings.REFRESH_DELAY_SEC,
    )
    if app.state.batch_refresher is None:
        app.state.batch_refresher = BatchQuoteRefresher(
            rest_client=rest_client,
            cache=quote_cache,
            symbols=settings.QUOTE_SYMBOLS,
            delay_sec=settings.REFRESH_DELAY_SEC,
            stale_after_ms=int(settings.CACHE_TTL_SEC * 1000),
        )
    if app.state.candle_fetcher is None:
        app.state.candle_fetcher = CandleFetcher(rest_client=rest_client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # missing FINNHUB_API_KEY fails startup here
    settings = app.state.get_settings()
    _bind_runtime_services(app, settings)
    print(
        f"[APP][startup] symbols={len(settings.QUOTE_SYMBOLS)} "
        f"delay_sec={settings.REFRESH_DELAY_SEC} ttl_sec={settings.CACHE_TTL_SEC}",
        flush=True,
    )
    yield
    print("[APP][shutdown]", flush=True)


app = FastAPI(title="Quoteboard Finnhub Proxy", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"], allow_headers=["*"])
app.include_router(router)

# NOTE: lazy-loaded so app import does not require env during tests.
app.state.get_settings = get_settings
app.state.batch_refresher = None
app.state.candle_fetcher = None


def run() -> None:
    import uvicorn

    settings = get_settings()
    print(f"[APP][listen] url=http://localhost:{settings.PORT}", flush=True)
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
