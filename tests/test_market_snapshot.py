import asyncio

import pytest

from dsefeed.core.cache import TTLCache
from dsefeed.core.company_directory import CompanyDirectory
from dsefeed.core.errors import FetchError, ParseError
from dsefeed.core.market_snapshot import MarketSnapshotService

from tests.support import LISTING_PATH, MARKET_PATH, market_page, market_row


def build_service(site, clock):
    fetcher = site.fetcher()
    directory = CompanyDirectory(fetcher, cache=TTLCache(600, max_stale_seconds=86400, clock=clock))
    snapshot = MarketSnapshotService(
        fetcher, directory, cache=TTLCache(60, max_stale_seconds=900, clock=clock), retries=0
    )
    return snapshot


def test_snapshot_merges_directory(site, fake_clock):
    service = build_service(site, fake_clock)
    snapshot = asyncio.run(service.get_raw_market_snapshot())
    by_symbol = {r.symbol: r for r in snapshot.raw_stocks}
    assert set(by_symbol) == {"GP", "ABCBANK", "SQURPHARMA"}
    assert by_symbol["ABCBANK"].name == "ABC Bank Limited"
    assert by_symbol["ABCBANK"].sector == "Bank"
    assert snapshot.timestamp_text.startswith("Latest Share Price")


def test_abcbank_scenario_during_market_hours(site, fake_clock):
    service = build_service(site, fake_clock)
    stock = asyncio.run(service.find_stock("abcbank", market_open=True))
    assert stock.change == 5.50
    assert stock.change_percent == 5.50


def test_snapshot_is_cached_within_ttl(site, fake_clock):
    service = build_service(site, fake_clock)

    async def scenario():
        await service.get_raw_market_snapshot()
        fake_clock.advance(30)
        await service.get_raw_market_snapshot()
        fake_clock.advance(31)
        await service.get_raw_market_snapshot()

    asyncio.run(scenario())
    assert site.count(MARKET_PATH) == 2
    assert site.count(LISTING_PATH) == 1


def test_zero_row_page_is_fatal_and_not_cached(site, fake_clock):
    site.set(MARKET_PATH, market_page())
    service = build_service(site, fake_clock)
    with pytest.raises(ParseError):
        asyncio.run(service.get_raw_market_snapshot())
    assert service.cache.get("market_snapshot") is None


def test_failed_refresh_serves_previous_snapshot(site, fake_clock):
    service = build_service(site, fake_clock)

    async def scenario():
        first = await service.get_raw_market_snapshot()
        site.set(MARKET_PATH, market_page())
        fake_clock.advance(120)
        second = await service.get_raw_market_snapshot()
        return first, second

    first, second = asyncio.run(scenario())
    assert second is first
    # the good entry keeps its original fetch time
    assert service.cache.age_ms(service.cache.get("market_snapshot")) == 120_000


def test_stale_snapshot_expires_after_max_staleness(site, fake_clock):
    service = build_service(site, fake_clock)

    async def scenario():
        await service.get_raw_market_snapshot()
        site.set(MARKET_PATH, 503)
        fake_clock.advance(901)
        await service.get_raw_market_snapshot()

    with pytest.raises(FetchError):
        asyncio.run(scenario())


def test_directory_failure_keeps_previous_map(site, fake_clock):
    service = build_service(site, fake_clock)

    async def scenario():
        await service.directory.get_company_info_map()
        site.set(LISTING_PATH, 500)
        fake_clock.advance(601)
        return await service.directory.get_company_info_map()

    companies = asyncio.run(scenario())
    assert "ABCBANK" in companies
    assert site.count(LISTING_PATH) == 2


def test_directory_without_cache_propagates_failure(site, fake_clock):
    site.set(LISTING_PATH, 500)
    service = build_service(site, fake_clock)
    with pytest.raises(FetchError):
        asyncio.run(service.get_raw_market_snapshot())


def test_get_stocks_uses_close_price_after_hours(site, fake_clock):
    site.set(MARKET_PATH, market_page(market_row(1, "ABCBANK", "105.50", "107", "104", "105.00", "100.00")))
    service = build_service(site, fake_clock)
    (stock,) = asyncio.run(service.get_stocks(market_open=False))
    assert stock.change == 5.0
