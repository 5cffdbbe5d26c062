import pytest
from fastapi.testclient import TestClient

from dsefeed.api.app import create_app
from dsefeed.api.settings import ApiSettings
from dsefeed.core.cache import TTLCache
from dsefeed.core.context import ServiceContext
from dsefeed.db.manager import DatabaseManager

from tests.support import COMPANY_PATH, MARKET_PATH, OPEN_CLOCK

COMPANY_PAGE = """
<html><body><table>
  <tr><th>52 Weeks' Moving Range</th><td>95.00 - 120.50</td></tr>
  <tr><th>Face Value</th><td>10</td></tr>
</table></body></html>
"""


@pytest.fixture
def settings(monkeypatch):
    for var in ("ADMIN_API_KEY", "DATABASE_URL", "CORS_ORIGINS", "API_RATE_LIMIT", "SCHEDULER_ENABLED"):
        monkeypatch.delenv(var, raising=False)
    return ApiSettings()


@pytest.fixture
def client(site, settings):
    site.set(COMPANY_PATH, COMPANY_PAGE)
    context = ServiceContext.build(fetcher=site.fetcher(), clock=OPEN_CLOCK)
    return TestClient(create_app(settings, context))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": False}


def test_market_data_lists_all_stocks(client):
    body = client.get("/api/market-data").json()
    assert body["count"] == 3
    assert [s["symbol"] for s in body["data"]] == ["ABCBANK", "GP", "SQURPHARMA"]
    assert body["marketOpen"] is True
    assert "timestamp" in body


def test_market_data_single_code(client):
    response = client.get("/api/market-data", params={"code": "abcbank"})
    assert response.status_code == 200
    stock = response.json()["data"]
    assert stock["symbol"] == "ABCBANK"
    assert stock["name"] == "ABC Bank Limited"
    assert (stock["change"], stock["changePercent"]) == (5.5, 5.5)


def test_market_data_code_in_post_body(client):
    response = client.post("/api/market-data", json={"code": "GP"})
    assert response.status_code == 200
    assert response.json()["data"]["symbol"] == "GP"


def test_market_data_unknown_code(client):
    response = client.get("/api/market-data", params={"code": "nope"})
    assert response.status_code == 404
    assert response.json() == {"error": "Stock not found: NOPE"}


def test_market_data_upstream_failure(site, client):
    site.set("/latest_share_price_scroll_by_ltp.php", 503)
    response = client.get("/api/market-data")
    assert response.status_code == 500
    assert "error" in response.json()


@pytest.mark.parametrize("params", [{}, {"code": "GP"}])
def test_market_data_reads_snapshot_once_per_request(site, settings, fake_clock, params):
    context = ServiceContext.build(fetcher=site.fetcher(), clock=OPEN_CLOCK)
    context.snapshot.cache = TTLCache(60, max_stale_seconds=900, clock=fake_clock)
    client = TestClient(create_app(settings, context))
    assert client.get("/api/market-data").status_code == 200
    assert site.count(MARKET_PATH) == 1

    fake_clock.advance(120)
    site.set(MARKET_PATH, 503)
    response = client.get("/api/market-data", params=params)
    assert response.status_code == 200
    assert site.count(MARKET_PATH) == 2


def test_sectors(client):
    body = client.get("/api/market/sectors").json()
    names = {s["name"] for s in body["data"]}
    assert names == {"Bank", "Telecommunication", "Pharmaceuticals & Chemicals"}


def test_fundamentals_requires_symbol(client):
    response = client.get("/api/stock-fundamentals")
    assert response.status_code == 400
    assert response.json() == {"error": "Symbol parameter is required"}


def test_fundamentals_without_sector(client):
    response = client.get("/api/stock-fundamentals", params={"symbol": "gp"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data == {"symbol": "GP", "faceValue": 10.0, "yearHigh": 120.5, "yearLow": 95.0}


def test_history_rejects_malformed_number(client):
    response = client.get("/api/stock-history", params={"symbol": "GP", "currentPrice": "abc"})
    assert response.status_code == 400
    assert "currentPrice" in response.json()["error"]


def test_history_rejects_unknown_timeframe(client):
    response = client.get("/api/stock-history", params={"symbol": "GP", "timeframe": "5Y"})
    assert response.status_code == 400


def test_history_falls_back_to_live_quote(client):
    response = client.get("/api/stock-history", params={"symbol": "ABCBANK", "timeframe": "1w"})
    assert response.status_code == 200
    body = response.json()
    assert body["timeframe"] == "1W"
    assert body["source"] == "simulated"
    assert body["count"] == 5
    assert body["data"][-1]["close"] == 105.5


def test_history_needs_price_for_unknown_symbol(client):
    response = client.get("/api/stock-history", params={"symbol": "NOPE"})
    assert response.status_code == 400


def test_history_with_explicit_quote(client):
    response = client.post("/api/stock-history", json={"symbol": "NOPE", "currentPrice": 20, "timeframe": "1M"})
    assert response.status_code == 200
    assert response.json()["data"][-1]["close"] == 20.0


def test_stock_data_unknown_symbol(client):
    response = client.get("/api/stock-data", params={"symbol": "NOPE"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Stock not found: NOPE"}


def test_stock_data_missing_symbol(client):
    response = client.get("/api/stock-data")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_stock_data_unified_view(client):
    response = client.get("/api/stock-data", params={"symbol": "ABCBANK", "include_history": "true", "timeframe": "1W"})
    assert response.status_code == 200
    body = response.json()
    data = body["data"]
    assert body["success"] is True
    assert data["sector"] == "Bank"
    assert data["market"]["previousClose"] == 100.0
    assert data["fundamentals"]["yearHigh"] == 120.5
    assert data["historySource"] == "simulated"
    assert len(data["history"]) == 5


def test_stock_news_placeholder(client):
    body = client.get("/api/stock-news", params={"symbol": "GP"}).json()
    assert body["symbol"] == "GP"
    assert body["data"][0]["source"] == "System"


def test_preflight(client):
    response = client.options("/api/market-data")
    assert response.status_code == 204


def test_import_without_database(client):
    response = client.post("/api/prices/import", json={"prices": []})
    assert response.status_code == 503


def test_import_rejects_bad_admin_key(site, monkeypatch, settings):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    context = ServiceContext.build(fetcher=site.fetcher(), clock=OPEN_CLOCK)
    client = TestClient(create_app(ApiSettings(), context))
    assert client.post("/api/prices/import", json={"prices": []}).status_code == 401
    response = client.post("/api/prices/import", json={"prices": []}, headers={"x-api-key": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid API key"}


def test_import_and_snapshot_with_database(site, settings, tmp_path):
    database = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'prices.db'}")
    context = ServiceContext.build(fetcher=site.fetcher(), clock=OPEN_CLOCK, database=database)

    with TestClient(create_app(settings, context)) as client:
        bad = client.post("/api/prices/import", json={"prices": "nope"})
        assert bad.status_code == 400

        response = client.post(
            "/api/prices/import",
            json={
                "prices": [
                    {"symbol": "GP", "date": "2026-10-14", "close": 290.0},
                    {"symbol": "GP", "date": "2026-10-13", "close": 288.5, "volume": 1000},
                    {"symbol": "GP", "close": 1},
                ]
            },
        )
        assert response.json() == {"success": True, "imported": 2, "message": "Successfully imported 2 records"}

        assert client.get("/health").json() == {"status": "ok", "database": True}

        snapshot = client.post("/api/prices/snapshot").json()
        assert snapshot["saved"] == 3
        assert snapshot["date"] == "2026-10-15"
