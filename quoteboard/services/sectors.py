from __future__ import annotations

from typing import Iterable

from quoteboard.schemas.quote import QuoteRecord

SECTORS: dict[str, list[str]] = {
    "Technology": ["AAPL", "MSFT", "GOOGL", "META", "NVDA", "AMD", "INTC", "ADBE", "CRM", "ORCL"],
    "Financial": ["JPM", "BAC", "WFC", "C", "GS", "MS", "V", "MA", "AXP", "BLK"],
    "Healthcare": ["JNJ", "UNH", "PFE", "ABBV", "TMO", "ABT", "MRK", "LLY", "BMY", "AMGN"],
    "Consumer": ["AMZN", "TSLA", "WMT", "TGT", "COST", "HD", "NKE", "SBUX", "MCD", "CMG"],
    "Energy": ["XOM", "CVX", "COP", "SLB", "EOG", "PSX", "VLO", "MPC", "OXY", "HAL"],
    "Industrials": ["BA", "CAT", "GE", "MMM", "HON", "UPS", "FDX", "LMT", "RTX", "NOC"],
    "Communication": ["DIS", "NFLX", "CMCSA", "T", "VZ", "TMUS", "CHTR", "PARA"],
    "Materials": ["LIN", "APD", "ECL", "SHW", "DD", "NEM", "FCX", "GOLD", "NUE"],
    "Real Estate": ["AMT", "PLD", "CCI", "EQIX", "PSA", "SPG", "O", "WELL", "DLR"],
    "Utilities": ["NEE", "DUK", "SO", "D", "AEP", "EXC", "XEL", "ES", "ED"],
}

SECTOR_COLORS: dict[str, str] = {
    "Technology": "#6366f1",
    "Financial": "#10b981",
    "Healthcare": "#ef4444",
    "Consumer": "#f59e0b",
    "Energy": "#8b5cf6",
    "Industrials": "#06b6d4",
    "Communication": "#ec4899",
    "Materials": "#14b8a6",
    "Real Estate": "#f97316",
    "Utilities": "#84cc16",
}
DEFAULT_SECTOR_COLOR = "#64748b"
OTHER_SECTOR = "Other"

_SECTOR_BY_SYMBOL = {symbol: sector for sector, symbols in SECTORS.items() for symbol in symbols}


def get_sector_for_symbol(symbol: str) -> str:
    return _SECTOR_BY_SYMBOL.get(symbol, OTHER_SECTOR)


def sector_overview(records: Iterable[QuoteRecord]) -> list[dict]:
    """Per-sector count, mean percent change and summed price, in first-seen order."""
    stats: dict[str, dict] = {}
    for record in records:
        sector = get_sector_for_symbol(record.symbol)
        row = stats.setdefault(sector, {"count": 0, "change_sum": 0.0, "change_count": 0, "total_value": 0.0})
        row["count"] += 1
        row["total_value"] += record.price
        if record.percent_change is not None:
            row["change_sum"] += record.percent_change
            row["change_count"] += 1

    out: list[dict] = []
    for sector, row in stats.items():
        avg_change = row["change_sum"] / row["change_count"] if row["change_count"] else 0.0
        out.append(
            {
                "sector": sector,
                "count": row["count"],
                "avg_change": avg_change,
                "total_value": row["total_value"],
                "color": SECTOR_COLORS.get(sector, DEFAULT_SECTOR_COLOR),
            }
        )
    return out
