import asyncio

from dsefeed.core.cache import TTLCache
from dsefeed.core.fundamentals import FundamentalsService, company_page_url
from dsefeed.sources.fundamentals_parser import FIELD_RULES, FundamentalsParser

from tests.support import COMPANY_PATH, StubSite

FULL_PAGE = """
<html><body>
<table>
  <tr><th>Authorized Capital (mn)</th><td>20,000.00</td></tr>
  <tr><th>Paid-up Capital (mn)</th><td>13,503.00</td></tr>
  <tr><th>Face/par Value</th><td>10.0</td></tr>
  <tr><th>Market Capitalization (mn)</th><td>392,262.15</td></tr>
  <tr><th>52 Weeks' Moving Range</th><td>250.10 - 305.50</td></tr>
  <tr><th>Listing Year</th><td>2009</td></tr>
  <tr><th>Last AGM held on</th><td>23-04-2026</td></tr>
  <tr><td>Sector</td><td>Telecommunication</td></tr>
  <tr><th>Market Category</th><td>A</td></tr>
</table>
<table>
  <tr><td>Current P/E Ratio using Basic EPS</td><td>12.45</td><td>11.80</td><td>0.00</td></tr>
</table>
<h2>Financial Performance as per Audited Financial Statements</h2>
<table>
  <tr><td>Year</td><td>a</td><td>b</td><td>c</td><td>EPS</td><td>e</td><td>f</td><td>NAV</td></tr>
  <tr><td>2024</td><td>1</td><td>2</td><td>3</td><td>25.10</td><td>5</td><td>6</td><td>40.25</td></tr>
  <tr><td>2025</td><td>1</td><td>2</td><td>3</td><td>27.35</td><td>5</td><td>6</td><td>42.80</td></tr>
</table>
</body></html>
"""

RANGE_ONLY_PAGE = """
<html><body><table>
  <tr><th>52 Weeks' Moving Range</th><td>95.00 - 120.50</td></tr>
</table></body></html>
"""


def test_full_page():
    result = FundamentalsParser(FULL_PAGE, "gp").parse()
    assert result.symbol == "GP"
    assert result.authorized_cap == 20000.0
    assert result.paid_up_cap == 13503.0
    assert result.face_value == 10.0
    assert result.market_cap == 392262.15
    assert (result.year_low, result.year_high) == (250.10, 305.50)
    assert result.listing_year == 2009
    assert result.last_agm == "23-04-2026"
    assert result.sector == "Telecommunication"
    assert result.pe == 11.80
    assert (result.eps, result.nav) == (27.35, 42.80)


def test_missing_pe_does_not_affect_range():
    result = FundamentalsParser(RANGE_ONLY_PAGE, "ABC").parse()
    assert result.pe is None
    assert result.year_low == 95.0
    assert result.year_high == 120.5
    payload = result.to_dict()
    assert "pe" not in payload
    assert payload["yearHigh"] == 120.5
    assert payload["yearLow"] == 95.0


def test_missing_sector_is_omitted():
    payload = FundamentalsParser(RANGE_ONLY_PAGE, "ABC").parse().to_dict()
    assert "sector" not in payload
    assert payload["symbol"] == "ABC"


def test_range_ends_are_ordered():
    html = "<table><tr><th>52 Weeks' Moving Range</th><td>130.00 - 90.00</td></tr></table>"
    result = FundamentalsParser(html, "X").parse()
    assert (result.year_low, result.year_high) == (90.0, 130.0)


def test_agm_rejects_script_text():
    html = "<table><tr><th>Last AGM held on</th><td>function(){ window.x = 1 }</td></tr></table>"
    assert FundamentalsParser(html, "X").parse().last_agm is None


def test_implausible_pe_ignored():
    html = "<table><tr><td>Current P/E Ratio using Basic EPS</td><td>25000</td><td>0</td></tr></table>"
    assert FundamentalsParser(html, "X").parse().pe is None


def test_rejected_listing_year_leaves_other_fields():
    html = (
        "<table><tr><th>Listing Year</th><td>1066</td></tr>"
        "<tr><th>Face Value</th><td>10</td></tr></table>"
    )
    result = FundamentalsParser(html, "X").parse()
    assert result.listing_year is None
    assert result.face_value == 10.0


def test_each_field_rule_is_independent():
    html = "<table><tr><th>Face Value</th><td>10</td></tr></table>"
    for field_name, rules in FIELD_RULES.items():
        values = [rule.apply(html) for rule in rules]
        if field_name == "face_value":
            assert 10.0 in values
        else:
            assert all(v is None for v in values)


def test_eps_nav_fallback_patterns():
    html = "<div>EPS (Basic)<span>3.21</span></div><div>NAV per share<span>18.90</span></div>"
    result = FundamentalsParser(html, "X").parse()
    assert (result.eps, result.nav) == (3.21, 18.9)


def test_company_page_url():
    assert company_page_url("gp", "https://www.dsebd.org") == "https://www.dsebd.org/displayCompany.php?name=GP"


def test_service_caches_per_symbol(fake_clock):
    site = StubSite({COMPANY_PATH: FULL_PAGE})
    service = FundamentalsService(site.fetcher(), cache=TTLCache(300, clock=fake_clock))

    async def scenario():
        first = await service.fetch_stock_fundamentals("GP")
        second = await service.fetch_stock_fundamentals("gp")
        fake_clock.advance(301)
        await service.fetch_stock_fundamentals("GP")
        return first, second

    first, second = asyncio.run(scenario())
    assert first is second
    assert site.count(COMPANY_PATH) == 2
