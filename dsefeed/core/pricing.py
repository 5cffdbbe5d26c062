"""Derived quote fields: change and change percent."""

import math
from decimal import ROUND_HALF_UP, Decimal

from dsefeed.core.models import RawStockData, StockData


def round2(value: float) -> float:
    """Round half away from zero to 2 decimals; non-finite values become 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round1(value: float) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_stock_data(raw: RawStockData, market_open: bool) -> StockData:
    """
    Build the UI quote from a scraped row.

    While the session is open the last traded price is the current price;
    after the close the published close price is authoritative.
    """
    base_price = raw.ltp if market_open else raw.closep
    change = base_price - raw.ycp
    change_percent = (change / raw.ycp) * 100 if raw.ycp != 0 else 0.0

    return StockData(
        symbol=raw.symbol,
        name=raw.name,
        sector=raw.sector,
        category=raw.category,
        ltp=raw.ltp,
        change=round2(change),
        change_percent=round2(change_percent),
        volume=raw.volume,
        high=raw.high,
        low=raw.low,
        closep=raw.closep,
        ycp=raw.ycp,
        trade=raw.trade,
        value_mn=raw.value_mn,
    )
