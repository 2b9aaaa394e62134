from fastapi import APIRouter, HTTPException, Request

from quoteboard.errors import ConfigurationError
from quoteboard.services.sectors import sector_overview

router = APIRouter()


def _resolve_quotes(request: Request):
    refresher = request.app.state.batch_refresher
    if refresher is None:
        raise HTTPException(status_code=503, detail='QUOTE_REFRESHER_NOT_CONFIGURED')
    try:
        return refresher.get_quotes()
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get('/stocks')
def get_stocks(request: Request):
    return [row.model_dump(by_alias=True) for row in _resolve_quotes(request)]


@router.get('/sectors')
def get_sectors(request: Request):
    return sector_overview(_resolve_quotes(request))


@router.get('/candles/{symbol}')
def get_candles(symbol: str, request: Request):
    fetcher = request.app.state.candle_fetcher
    if fetcher is None:
        raise HTTPException(status_code=503, detail='CANDLE_FETCHER_NOT_CONFIGURED')
    try:
        points = fetcher.fetch_candles(symbol.strip().upper())
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return [p.model_dump() for p in points]


@router.get('/metrics/quote')
def quote_metrics(request: Request):
    refresher = request.app.state.batch_refresher
    if refresher is None:
        return {'configured': False}
    return {'configured': True, **refresher.metrics()}
