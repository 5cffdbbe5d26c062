"""Unified per-symbol view: live quote, fundamentals and optional history in one payload."""

import asyncio
from typing import Any, Dict, Optional

from dsefeed.core.errors import DseFeedError, NotFoundError
from dsefeed.core.fundamentals import FundamentalsService
from dsefeed.core.history import HistoricalSeriesProvider
from dsefeed.core.market_hours import MarketClock
from dsefeed.core.market_snapshot import MarketSnapshotService
from dsefeed.core.models import StockData, StockFundamentals
from dsefeed.core.timeframe import Timeframe
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

UNKNOWN = "Unknown"


def market_block(stock: StockData) -> Dict[str, Any]:
    return {
        "ltp": stock.ltp,
        "change": stock.change,
        "changePercent": stock.change_percent,
        "high": stock.high,
        "low": stock.low,
        "closep": stock.closep,
        "previousClose": stock.ycp,
        "volume": stock.volume,
        "trade": stock.trade,
        "valueMn": stock.value_mn,
    }


class StockViewService:
    def __init__(
        self,
        snapshot: MarketSnapshotService,
        fundamentals: FundamentalsService,
        history: HistoricalSeriesProvider,
        clock: Optional[MarketClock] = None,
    ):
        self.snapshot = snapshot
        self.fundamentals = fundamentals
        self.history = history
        self.clock = clock or MarketClock()

    async def _fundamentals_or_none(self, symbol: str) -> Optional[StockFundamentals]:
        try:
            return await self.fundamentals.fetch_stock_fundamentals(symbol)
        except DseFeedError as e:
            log.warning(f"Fundamentals unavailable for {symbol}: {e}")
            return None

    async def build(
        self,
        symbol: str,
        include_history: bool = False,
        timeframe: Timeframe = Timeframe.ONE_MONTH,
    ) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: symbol is not in the live snapshot
            FetchError / ParseError: the snapshot itself could not be produced
        """
        symbol = symbol.strip().upper()
        market_open = self.clock.is_open()

        stock, fundamentals = await asyncio.gather(
            self.snapshot.find_stock(symbol, market_open),
            self._fundamentals_or_none(symbol),
        )
        if stock is None:
            raise NotFoundError(f"Stock not found: {symbol}", symbol=symbol)

        data: Dict[str, Any] = {
            "symbol": symbol,
            "name": stock.name or symbol,
            "sector": (fundamentals and fundamentals.sector) or stock.sector or UNKNOWN,
            "category": (fundamentals and fundamentals.category) or stock.category or UNKNOWN,
            "market": market_block(stock),
            "fundamentals": fundamentals.to_dict() if fundamentals else None,
        }

        if include_history:
            series = await self.history.fetch_historical_data(
                symbol, timeframe, stock.ltp, stock.high, stock.low, stock.volume
            )
            data["history"] = series.to_list()
            data["historySource"] = series.source

        return {"success": True, "data": data, "marketOpen": market_open}
