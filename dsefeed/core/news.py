import asyncio
from datetime import date
from typing import Callable, List, Optional

from dsefeed.core.cache import TTLCache
from dsefeed.core.config import Config
from dsefeed.core.errors import DseFeedError
from dsefeed.core.fetcher import Fetcher
from dsefeed.core.fundamentals import company_page_url
from dsefeed.core.market_hours import MarketClock
from dsefeed.core.models import NewsItem
from dsefeed.sources.news_parser import display_date, parse_archive_news, parse_company_announcements
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

MAX_ITEMS = 20
PLACEHOLDER_SOURCE = "System"


class NewsService:
    """
    Company news from the exchange archive and the company page.

    Each source is best effort: a failing source is logged and skipped.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        cache: Optional[TTLCache] = None,
        base_url: Optional[str] = None,
        clock: Optional[MarketClock] = None,
    ):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TTLCache(
            Config.get("cache", "news_ttl_seconds", default=900), name="news"
        )
        self.base_url = base_url or Config.get("dse", "base_url")
        self.clock = clock or MarketClock()

    @property
    def archive_url(self) -> str:
        return f"{self.base_url}{Config.get('dse', 'news_page')}"

    async def fetch_stock_news(self, symbol: str) -> List[NewsItem]:
        key = symbol.strip().upper()
        entry = self.cache.get_fresh(key)
        if entry is not None:
            log.debug(f"Cache hit for news: {key}")
            return entry.data

        today = self.clock.today()
        company_url = company_page_url(key, self.base_url)
        archive, company = await asyncio.gather(
            self._collect(self.archive_url, parse_archive_news, key, today, "News archive"),
            self._collect(company_url, parse_company_announcements, key, today, "Company announcements"),
        )
        items = archive + company

        news = _dedupe(items)[:MAX_ITEMS]
        if not news:
            news = [
                NewsItem(
                    title=key,
                    source=PLACEHOLDER_SOURCE,
                    url=self.archive_url,
                    published_at=display_date(today),
                    summary=f"No recent news available for {key}. Please check the DSE website for the latest announcements.",
                )
            ]

        log.info(f"Found {len(news)} news items for {key}")
        self.cache.put(key, news)
        return news

    async def _collect(
        self,
        url: str,
        parse: Callable[[str, str, str, date], List[NewsItem]],
        key: str,
        today: date,
        label: str,
    ) -> List[NewsItem]:
        try:
            html = await self.fetcher.fetch_html(url)
            return parse(html, key, url, today)
        except DseFeedError as e:
            log.warning(f"{label} unavailable for {key}: {e}")
            return []


def _dedupe(items: List[NewsItem]) -> List[NewsItem]:
    seen = set()
    unique = []
    for item in items:
        if item.summary in seen:
            continue
        seen.add(item.summary)
        unique.append(item)
    return unique
