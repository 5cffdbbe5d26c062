from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dsefeed.api.settings import ApiSettings, get_api_settings
from dsefeed.core.context import ServiceContext
from dsefeed.core.errors import DseFeedError, ValidationError
from dsefeed.core.market_snapshot import find_in, stocks_from
from dsefeed.core.sectors import summarize_sectors
from dsefeed.core.timeframe import Timeframe
from dsefeed.scheduler.jobs import import_prices, save_daily_prices
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter()

READ_METHODS = ["GET", "POST"]
TRUE_VALUES = {"true", "1", "yes"}


class PriceImportRequest(BaseModel):
    prices: List[Dict[str, Any]]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def get_settings(request: Request) -> ApiSettings:
    return getattr(request.app.state, "settings", None) or get_api_settings()


async def request_params(request: Request) -> Dict[str, Any]:
    """Query string, overlaid with the JSON body on POST."""
    params: Dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            params.update({k: v for k, v in body.items() if v is not None})
    return params


def require_symbol(params: Dict[str, Any], name: str = "symbol") -> str:
    value = params.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name.capitalize()} parameter is required", field=name)
    return value.strip().upper()


def optional_number(params: Dict[str, Any], name: str) -> Optional[float]:
    value = params.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number", field=name, expected="number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a number, got {value!r}", field=name, expected="number") from exc
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{name} must be a finite number", field=name, expected="number")
    return number


def flag(params: Dict[str, Any], name: str) -> bool:
    value = params.get(name)
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES if value is not None else False


def require_admin(request: Request, settings: ApiSettings = Depends(get_settings)) -> None:
    if settings.admin_key_configured:
        api_key = request.headers.get("x-api-key")
        if api_key != settings.admin_api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")


def store_unavailable() -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "Price store is not configured"})


@router.api_route("/market-data", methods=READ_METHODS)
async def market_data(request: Request, context: ServiceContext = Depends(get_context)):
    params = await request_params(request)
    code = params.get("code")
    market_open = context.clock.is_open()
    snapshot = await context.snapshot.get_raw_market_snapshot()

    if isinstance(code, str) and code.strip():
        stock = find_in(snapshot, code, market_open)
        if stock is None:
            return JSONResponse(status_code=404, content={"error": f"Stock not found: {code.strip().upper()}"})
        return {
            "data": stock.to_dict(),
            "marketOpen": market_open,
            "timestamp": utc_timestamp(),
            "sourceTimestampText": snapshot.timestamp_text,
        }

    stocks = sorted(stocks_from(snapshot, market_open), key=lambda s: s.symbol)
    return {
        "data": [s.to_dict() for s in stocks],
        "marketOpen": market_open,
        "timestamp": utc_timestamp(),
        "sourceTimestampText": snapshot.timestamp_text,
        "count": len(stocks),
    }


@router.api_route("/market/sectors", methods=READ_METHODS)
async def market_sectors(context: ServiceContext = Depends(get_context)):
    market_open = context.clock.is_open()
    stocks = await context.snapshot.get_stocks(market_open)
    return {
        "data": [s.to_dict() for s in summarize_sectors(stocks)],
        "marketOpen": market_open,
        "timestamp": utc_timestamp(),
    }


@router.api_route("/stock-fundamentals", methods=READ_METHODS)
async def stock_fundamentals(request: Request, context: ServiceContext = Depends(get_context)):
    params = await request_params(request)
    symbol = require_symbol(params)
    fundamentals = await context.fundamentals.fetch_stock_fundamentals(symbol)
    return {"data": fundamentals.to_dict(), "timestamp": utc_timestamp()}


@router.api_route("/stock-history", methods=READ_METHODS)
async def stock_history(request: Request, context: ServiceContext = Depends(get_context)):
    params = await request_params(request)
    symbol = require_symbol(params)
    timeframe = Timeframe.parse(params.get("timeframe"), default=Timeframe.ONE_MONTH)

    current = optional_number(params, "currentPrice")
    high = optional_number(params, "highPrice")
    low = optional_number(params, "lowPrice")
    volume = optional_number(params, "volume")

    if None in (current, high, low, volume):
        stock = await _quote_or_none(context, symbol)
        if stock is not None:
            current = current if current is not None else stock.ltp
            high = high if high is not None else stock.high
            low = low if low is not None else stock.low
            volume = volume if volume is not None else stock.volume

    if current is None or current <= 0:
        raise ValidationError(
            "currentPrice is required (and must be positive) when no live quote is available",
            field="currentPrice",
            symbol=symbol,
        )

    series = await context.history.fetch_historical_data(
        symbol,
        timeframe,
        current,
        high if high is not None else current,
        low if low is not None else current,
        int(volume or 0),
    )
    return {
        "symbol": symbol,
        "timeframe": timeframe.value,
        "data": series.to_list(),
        "count": len(series),
        "source": series.source,
        "timestamp": utc_timestamp(),
    }


async def _quote_or_none(context: ServiceContext, symbol: str):
    try:
        return await context.snapshot.find_stock(symbol, context.clock.is_open())
    except DseFeedError as e:
        log.warning(f"Live quote unavailable for {symbol}: {e}")
        return None


@router.api_route("/stock-data", methods=READ_METHODS)
async def stock_data(request: Request, context: ServiceContext = Depends(get_context)):
    try:
        params = await request_params(request)
        symbol = require_symbol(params)
        timeframe = Timeframe.parse(params.get("timeframe"), default=Timeframe.ONE_MONTH)
        view = await context.stock_view.build(symbol, flag(params, "include_history"), timeframe)
    except DseFeedError as e:
        log.warning(f"Stock view failed: {e.as_dict()}")
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})

    view["timestamp"] = utc_timestamp()
    return view


@router.api_route("/stock-news", methods=READ_METHODS)
async def stock_news(request: Request, context: ServiceContext = Depends(get_context)):
    params = await request_params(request)
    symbol = require_symbol(params)
    news = await context.news.fetch_stock_news(symbol)
    return {"data": [item.to_dict() for item in news], "symbol": symbol, "timestamp": utc_timestamp()}


@router.post("/prices/import")
async def prices_import(
    request: Request,
    context: ServiceContext = Depends(get_context),
    _: None = Depends(require_admin),
):
    if context.database is None:
        return store_unavailable()
    params = await request_params(request)
    try:
        payload = PriceImportRequest.model_validate(params)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid data format. Expected { prices: [...] }", field="prices", expected="list of objects"
        ) from exc
    return await import_prices(context, payload.prices)


@router.post("/prices/snapshot")
async def prices_snapshot(
    context: ServiceContext = Depends(get_context),
    _: None = Depends(require_admin),
):
    if context.database is None:
        return store_unavailable()
    return await save_daily_prices(context)
