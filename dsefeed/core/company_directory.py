"""Cached symbol -> CompanyInfo directory built from the exchange listing page."""

from typing import Dict, Optional

from dsefeed.core.cache import TTLCache
from dsefeed.core.config import Config
from dsefeed.core.errors import DseFeedError, ParseError
from dsefeed.core.fetcher import Fetcher
from dsefeed.core.models import CompanyInfo
from dsefeed.sources.dse_parser import CompanyDirectoryParser
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

CACHE_KEY = "company_directory"


class CompanyDirectory:
    """
    Company listing with a long TTL; listings change rarely.

    A failed refresh never overwrites a good entry. The previous map is
    served while it is within ``max_stale_seconds``; past that the error
    reaches the caller.
    """

    def __init__(self, fetcher: Fetcher, cache: Optional[TTLCache] = None, url: Optional[str] = None):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TTLCache(
            Config.get("cache", "directory_ttl_seconds", default=600),
            max_stale_seconds=Config.get("cache", "directory_max_stale_seconds", default=86400),
            name="company_directory",
        )
        self.url = url or Config.get("dse", "base_url") + Config.get("dse", "directory_page")

    async def get_company_info_map(self) -> Dict[str, CompanyInfo]:
        entry = self.cache.get_fresh(CACHE_KEY)
        if entry is not None:
            return entry.data

        try:
            companies = await self._refresh()
        except DseFeedError as e:
            stale = self.cache.get_stale(CACHE_KEY)
            if stale is None:
                raise
            log.warning(f"Company directory refresh failed ({e}); serving entry aged {self.cache.age_ms(stale)}ms")
            return stale.data

        self.cache.put(CACHE_KEY, companies)
        return companies

    async def _refresh(self) -> Dict[str, CompanyInfo]:
        html = await self.fetcher.fetch_html(self.url)
        companies = CompanyDirectoryParser(html).parse()
        if not companies:
            raise ParseError("Company listing page yielded no companies", source=self.url)
        log.info(f"Company directory refreshed: {len(companies)} companies")
        return companies
