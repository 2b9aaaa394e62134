import os
from functools import lru_cache

from pydantic import BaseModel, field_validator

DEFAULT_QUOTE_SYMBOLS = [
    "AAPL", "MSFT", "GOOGL", "META", "NVDA", "AMD", "INTC", "ADBE", "CRM", "ORCL",
    "JPM", "BAC", "WFC", "C", "GS", "MS", "V", "MA", "AXP", "BLK",
    "JNJ", "UNH", "PFE", "ABBV", "TMO", "ABT", "MRK", "LLY", "BMY", "AMGN",
    "AMZN", "TSLA", "WMT", "TGT", "COST", "HD", "NKE", "SBUX", "MCD", "CMG",
]
DEFAULT_CLIENT_SYMBOLS = ["AAPL", "MSFT", "NVDA", "AMZN", "GOOGL", "META", "TSLA", "JPM"]


def parse_symbols(raw: str | None, default: list[str]) -> list[str]:
    if raw is None:
        return list(default)
    symbols = [s.strip().upper() for s in raw.split(",") if s.strip()]
    return symbols or list(default)


class Settings(BaseModel):
    FINNHUB_API_KEY: str
    FINNHUB_BASE_URL: str = "https://finnhub.io/api/v1"
    QUOTE_SYMBOLS: list[str]
    CLIENT_SYMBOLS: list[str]
    REFRESH_DELAY_SEC: float = 1.1
    CACHE_TTL_SEC: float = 60.0
    REQUEST_TIMEOUT_SEC: float = 5.0
    POLL_INTERVAL_SEC: float = 30.0
    PORT: int = 3001

    @field_validator("FINNHUB_API_KEY")
    @classmethod
    def require_api_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("FINNHUB_API_KEY must not be empty")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            "FINNHUB_API_KEY": os.getenv("FINNHUB_API_KEY"),
            "QUOTE_SYMBOLS": parse_symbols(os.getenv("QUOTE_SYMBOLS"), DEFAULT_QUOTE_SYMBOLS),
            "CLIENT_SYMBOLS": parse_symbols(os.getenv("CLIENT_SYMBOLS"), DEFAULT_CLIENT_SYMBOLS),
        }
        for name in (
            "FINNHUB_BASE_URL",
            "REFRESH_DELAY_SEC",
            "CACHE_TTL_SEC",
            "REQUEST_TIMEOUT_SEC",
            "POLL_INTERVAL_SEC",
            "PORT",
        ):
            value = os.getenv(name)
            if value is not None and value.strip():
                raw[name] = value.strip()
        return cls.model_validate(raw)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
