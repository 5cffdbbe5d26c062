"""Wiring of the long-lived services shared by the API, CLI and scheduler."""

from dataclasses import dataclass
from typing import Optional

from dsefeed.core.company_directory import CompanyDirectory
from dsefeed.core.config import Config
from dsefeed.core.fetcher import Fetcher
from dsefeed.core.fundamentals import FundamentalsService
from dsefeed.core.history import HistoricalSeriesProvider
from dsefeed.core.market_hours import MarketClock, MarketHours
from dsefeed.core.market_snapshot import MarketSnapshotService
from dsefeed.core.news import NewsService
from dsefeed.core.stock_view import StockViewService
from dsefeed.db.manager import DatabaseManager
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)


@dataclass
class ServiceContext:
    fetcher: Fetcher
    clock: MarketClock
    directory: CompanyDirectory
    snapshot: MarketSnapshotService
    fundamentals: FundamentalsService
    history: HistoricalSeriesProvider
    news: NewsService
    stock_view: StockViewService
    database: Optional[DatabaseManager] = None

    @classmethod
    def build(
        cls,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[MarketClock] = None,
        database: Optional[DatabaseManager] = None,
        base_url: Optional[str] = None,
    ) -> "ServiceContext":
        """
        Assemble every service around one fetcher and one clock.

        Each service owns its cache; nothing is shared at module level.
        """
        fetcher = fetcher or Fetcher()
        clock = clock or MarketClock(MarketHours.from_config())

        directory_url = snapshot_url = None
        if base_url:
            directory_url = base_url + Config.get("dse", "directory_page")
            snapshot_url = base_url + Config.get("dse", "market_page")

        directory = CompanyDirectory(fetcher, url=directory_url)
        snapshot = MarketSnapshotService(fetcher, directory, url=snapshot_url)
        fundamentals = FundamentalsService(fetcher, base_url=base_url)
        history = HistoricalSeriesProvider(fetcher, database=database, clock=clock, base_url=base_url)
        news = NewsService(fetcher, base_url=base_url, clock=clock)

        log.debug(f"Service context built (database={'yes' if database else 'no'})")
        return cls(
            fetcher=fetcher,
            clock=clock,
            directory=directory,
            snapshot=snapshot,
            fundamentals=fundamentals,
            history=history,
            news=news,
            stock_view=StockViewService(snapshot, fundamentals, history, clock),
            database=database,
        )

    async def close(self):
        await self.fetcher.close()
        if self.database is not None:
            await self.database.close()
