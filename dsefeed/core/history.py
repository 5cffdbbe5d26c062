"""
Historical Series Provider
==========================

Resolution order for a (symbol, timeframe) request:

1. The price-history table on the company page (``RealSeries``)
2. The daily price store, when a database is configured (``StoredSeries``)
3. A synthetic walk anchored to the supplied quote (``SynthesizedSeries``)

Whatever is produced is cached for the history TTL.
"""

import random
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from dsefeed.core.cache import TTLCache
from dsefeed.core.config import Config
from dsefeed.core.errors import FetchError
from dsefeed.core.fetcher import Fetcher
from dsefeed.core.fundamentals import company_page_url
from dsefeed.core.market_hours import MarketClock
from dsefeed.core.models import HistoricalSeries, RealSeries, StoredSeries, SynthesizedSeries
from dsefeed.core.synthetic import synthesize_series
from dsefeed.core.timeframe import TIMEFRAME_SPECS, Timeframe
from dsefeed.db.manager import DatabaseManager
from dsefeed.db.repository import PriceRepository
from dsefeed.sources.history_parser import filter_to_timeframe, parse_price_history
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

# The store holds one bar per trading day; MAX reads everything since this date.
STORE_EPOCH_DAYS = 365 * 50


class HistoricalSeriesProvider:
    def __init__(
        self,
        fetcher: Fetcher,
        cache: Optional[TTLCache] = None,
        database: Optional[DatabaseManager] = None,
        clock: Optional[MarketClock] = None,
        rng: Optional[random.Random] = None,
        base_url: Optional[str] = None,
        retries: Optional[int] = None,
        base_delay: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TTLCache(
            Config.get("cache", "history_ttl_seconds", default=300), name="history"
        )
        self.database = database
        self.clock = clock or MarketClock()
        self.rng = rng or random.Random()
        self.base_url = base_url
        self.retries = int(retries if retries is not None else Config.get("fetcher", "history_retries", default=3))
        self.base_delay = float(
            base_delay if base_delay is not None else Config.get("fetcher", "base_delay_seconds", default=1.0)
        )

    async def fetch_historical_data(
        self,
        symbol: str,
        timeframe: Timeframe,
        current_price: float,
        high_price: float,
        low_price: float,
        volume: int,
    ) -> HistoricalSeries:
        symbol = symbol.strip().upper()
        key = (symbol, timeframe.value)
        entry = self.cache.get_fresh(key)
        if entry is not None:
            log.debug(f"Cache hit for history: {symbol} {timeframe.value}")
            return entry.data

        series = await self._load_scraped(symbol, timeframe)
        if series is None and self.database is not None:
            series = await self._load_stored(symbol, timeframe)
        if series is None:
            log.info(f"No price history for {symbol} {timeframe.value}; synthesizing")
            series = SynthesizedSeries(
                synthesize_series(
                    current_price,
                    high_price,
                    low_price,
                    volume,
                    timeframe,
                    now=self.clock.now(),
                    rng=self.rng,
                )
            )

        self.cache.put(key, series)
        return series

    async def _load_scraped(self, symbol: str, timeframe: Timeframe) -> Optional[RealSeries]:
        url = company_page_url(symbol, self.base_url)
        try:
            html = await self.fetcher.fetch_with_retry(url, max_retries=self.retries, base_delay=self.base_delay)
        except FetchError as e:
            log.warning(f"History page unavailable for {symbol}: {e}")
            return None

        points = filter_to_timeframe(parse_price_history(html), timeframe)
        if not points:
            log.debug(f"No in-window history rows on company page for {symbol} {timeframe.value}")
            return None
        log.info(f"Parsed {len(points)} history rows for {symbol} {timeframe.value}")
        return RealSeries(points)

    async def _load_stored(self, symbol: str, timeframe: Timeframe) -> Optional[StoredSeries]:
        end = self.clock.today()
        lookback = TIMEFRAME_SPECS[timeframe].lookback_days
        start = end - timedelta(days=lookback if lookback is not None else STORE_EPOCH_DAYS)
        try:
            async with self.database.session() as session:
                records = await PriceRepository(session).get_prices(symbol, start, end)
        except SQLAlchemyError as e:
            log.warning(f"Price store lookup failed for {symbol}: {e}")
            return None

        if not records:
            return None
        log.info(f"Loaded {len(records)} stored bars for {symbol} {timeframe.value}")
        return StoredSeries([r.to_point() for r in records])
