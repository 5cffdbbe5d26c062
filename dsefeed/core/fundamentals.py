from typing import Optional
from urllib.parse import quote

from dsefeed.core.cache import TTLCache
from dsefeed.core.config import Config
from dsefeed.core.fetcher import Fetcher
from dsefeed.core.models import StockFundamentals
from dsefeed.sources.fundamentals_parser import FundamentalsParser
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)


def company_page_url(symbol: str, base_url: Optional[str] = None) -> str:
    base = base_url or Config.get("dse", "base_url")
    return f"{base}{Config.get('dse', 'company_page')}?name={quote(symbol.upper())}"


class FundamentalsService:
    """Per-symbol valuation metrics, cached for five minutes."""

    def __init__(self, fetcher: Fetcher, cache: Optional[TTLCache] = None, base_url: Optional[str] = None):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TTLCache(
            Config.get("cache", "fundamentals_ttl_seconds", default=300), name="fundamentals"
        )
        self.base_url = base_url

    async def fetch_stock_fundamentals(self, symbol: str) -> StockFundamentals:
        key = symbol.strip().upper()
        entry = self.cache.get_fresh(key)
        if entry is not None:
            log.debug(f"Cache hit for fundamentals: {key}")
            return entry.data

        url = company_page_url(key, self.base_url)
        log.info(f"Fetching fundamentals for {key}")
        html = await self.fetcher.fetch_html(url)
        fundamentals = FundamentalsParser(html, symbol=key).parse()

        self.cache.put(key, fundamentals)
        return fundamentals
