from pydantic import BaseModel, ConfigDict, Field


class QuoteRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str
    price: float
    percent_change: float | None = Field(default=None, alias="percentChange")


class CandlePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    close: float


class QuoteCacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    results: tuple[QuoteRecord, ...] = ()
    # 0 means the cache has never been filled
    fetched_at_ms: int = 0
