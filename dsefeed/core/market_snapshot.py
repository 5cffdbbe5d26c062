"""
Market Snapshot - Live Price Page Cache
=======================================

One shared snapshot of the live price page, refreshed at most once per TTL so
request bursts collapse into a single upstream fetch and every caller in the
window sees the same prices.
"""

import asyncio
from typing import List, Optional

from dsefeed.core.cache import TTLCache
from dsefeed.core.company_directory import CompanyDirectory
from dsefeed.core.config import Config
from dsefeed.core.errors import DseFeedError, ParseError
from dsefeed.core.fetcher import Fetcher
from dsefeed.core.models import MarketSnapshot, StockData
from dsefeed.core.pricing import compute_stock_data
from dsefeed.sources.dse_parser import extract_timestamp_text, parse_market_rows
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

CACHE_KEY = "market_snapshot"


class MarketSnapshotService:
    def __init__(
        self,
        fetcher: Fetcher,
        directory: CompanyDirectory,
        cache: Optional[TTLCache] = None,
        url: Optional[str] = None,
        retries: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.directory = directory
        self.cache = cache if cache is not None else TTLCache(
            Config.get("cache", "snapshot_ttl_seconds", default=60),
            max_stale_seconds=Config.get("cache", "snapshot_max_stale_seconds", default=900),
            name="market_snapshot",
        )
        self.url = url or Config.get("dse", "base_url") + Config.get("dse", "market_page")
        self.retries = int(retries if retries is not None else Config.get("fetcher", "snapshot_retries", default=0))

    async def get_raw_market_snapshot(self) -> MarketSnapshot:
        """
        Fresh or cached snapshot of every listed stock.

        Raises:
            ParseError: the page parsed to zero stocks and no usable stale entry exists
            FetchError: the page or directory could not be fetched and no usable stale entry exists
        """
        entry = self.cache.get_fresh(CACHE_KEY)
        if entry is not None:
            return entry.data

        try:
            snapshot = await self._refresh()
        except DseFeedError as e:
            stale = self.cache.get_stale(CACHE_KEY)
            if stale is None:
                log.error(f"Market snapshot refresh failed with nothing cached: {e}")
                raise
            log.warning(f"Market snapshot refresh failed ({e}); serving entry aged {self.cache.age_ms(stale)}ms")
            return stale.data

        self.cache.put(CACHE_KEY, snapshot)
        return snapshot

    async def _refresh(self) -> MarketSnapshot:
        companies, html = await asyncio.gather(
            self.directory.get_company_info_map(),
            self.fetcher.fetch_with_retry(self.url, max_retries=self.retries),
        )
        raw_stocks = parse_market_rows(html, companies)
        if not raw_stocks:
            raise ParseError("Live price page yielded no stocks; markup may have changed", source=self.url)
        return MarketSnapshot(raw_stocks=raw_stocks, timestamp_text=extract_timestamp_text(html))

    async def get_stocks(self, market_open: bool) -> List[StockData]:
        return stocks_from(await self.get_raw_market_snapshot(), market_open)

    async def find_stock(self, symbol: str, market_open: bool) -> Optional[StockData]:
        return find_in(await self.get_raw_market_snapshot(), symbol, market_open)


def stocks_from(snapshot: MarketSnapshot, market_open: bool) -> List[StockData]:
    return [compute_stock_data(raw, market_open) for raw in snapshot.raw_stocks]


def find_in(snapshot: MarketSnapshot, symbol: str, market_open: bool) -> Optional[StockData]:
    wanted = symbol.strip().upper()
    for raw in snapshot.raw_stocks:
        if raw.symbol.upper() == wanted:
            return compute_stock_data(raw, market_open)
    return None
