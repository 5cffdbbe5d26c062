import asyncio
from datetime import date

from dsefeed.core.news import NewsService
from dsefeed.sources.news_parser import (
    normalize_news_date,
    parse_archive_news,
    parse_company_announcements,
    topic_title,
)

from tests.support import COMPANY_PATH, NEWS_PATH, OPEN_CLOCK, StubSite

TODAY = date(2026, 10, 15)
DIVIDEND = "Grameenphone Ltd. has recommended a final cash dividend of 125% for the year"

ARCHIVE_PAGE = f"""
<html><body><table>
  <tr><td>Trading Code</td><td>News Title</td><td>News</td><td>Post Date</td></tr>
  <tr><td>GP</td><td>Dividend Declaration</td><td>{DIVIDEND}</td><td>16-Jan-2026</td></tr>
  <tr><td>GPHISPAT</td><td>Trading halt</td><td>GPH Ispat trading will remain suspended for record date</td><td>12-Jan-2026</td></tr>
  <tr><td>GP</td><td>Short</td><td>too short</td><td>10-Jan-2026</td></tr>
</table></body></html>
"""

COMPANY_PAGE = f"""
<html><body>
<h3>Price Sensitive Information</h3>
<table>
  <tr><th>Date</th><th>Details</th></tr>
  <tr><td>14/10/2026</td><td>Q3 un-audited financial statements published</td></tr>
  <tr><td>16-Jan-2026</td><td>{DIVIDEND}</td></tr>
</table>
</body></html>
"""


def test_normalize_news_date():
    assert normalize_news_date("Posted 16-Jan-2026") == "January 16, 2026"
    assert normalize_news_date("05/03/26") == "March 5, 2026"
    assert normalize_news_date("31-Feb-2026") is None
    assert normalize_news_date("no date") is None


def test_topic_title():
    assert topic_title("gp", "Q2 financials") == "GP - Q2"
    assert topic_title("GP", "Record date for Bonus share") == "GP - Bonus"
    assert topic_title("GP", "Board meeting") == "GP"


def test_archive_matches_whole_symbol_only():
    items = parse_archive_news(ARCHIVE_PAGE, "GP", "https://www.dsebd.org/news_archive.php", TODAY)
    assert len(items) == 1
    item = items[0]
    assert item.title == "GP - Dividend"
    assert item.published_at == "January 16, 2026"
    assert item.source == "DSE News Archive"
    assert item.summary == DIVIDEND


def test_company_announcements_skip_header_rows():
    items = parse_company_announcements(COMPANY_PAGE, "GP", "https://www.dsebd.org/displayCompany.php?name=GP", TODAY)
    assert [i.title for i in items] == ["GP - Q3", "GP - Dividend"]
    assert items[0].published_at == "October 14, 2026"
    assert items[0].source == "DSE Corporate"


def test_service_merges_and_dedupes_sources():
    site = StubSite({NEWS_PATH: ARCHIVE_PAGE, COMPANY_PATH: COMPANY_PAGE})
    news = asyncio.run(NewsService(site.fetcher(), clock=OPEN_CLOCK).fetch_stock_news("gp"))
    assert [n.summary for n in news] == [DIVIDEND, "Q3 un-audited financial statements published"]
    assert news[0].to_dict()["publishedAt"] == "January 16, 2026"


def test_service_placeholder_when_sources_fail():
    site = StubSite({NEWS_PATH: 500, COMPANY_PATH: 500})
    (item,) = asyncio.run(NewsService(site.fetcher(), clock=OPEN_CLOCK).fetch_stock_news("GP"))
    assert item.source == "System"
    assert item.title == "GP"
    assert item.published_at == "October 15, 2026"
    assert "No recent news available for GP" in item.summary


def test_service_keeps_company_items_when_archive_fails():
    site = StubSite({NEWS_PATH: 503, COMPANY_PATH: COMPANY_PAGE})
    news = asyncio.run(NewsService(site.fetcher(), clock=OPEN_CLOCK).fetch_stock_news("GP"))
    assert [n.title for n in news] == ["GP - Q3", "GP - Dividend"]
    assert (site.count(NEWS_PATH), site.count(COMPANY_PATH)) == (1, 1)
