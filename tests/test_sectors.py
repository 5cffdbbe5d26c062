import pytest

from dsefeed.core.models import StockData
from dsefeed.core.sectors import classify_sector, sector_of, summarize_sectors


def stock(symbol, change, change_percent, value_mn, sector="", name=""):
    return StockData(
        symbol=symbol,
        name=name or symbol,
        sector=sector,
        category="A",
        ltp=100.0,
        change=change,
        change_percent=change_percent,
        volume=1000,
        high=101.0,
        low=99.0,
        closep=100.0,
        ycp=100.0 - change,
        trade=10,
        value_mn=value_mn,
    )


@pytest.mark.parametrize(
    "symbol, expected",
    [
        ("ABCBANK", "Bank"),
        ("GP", "Telecommunication"),
        ("SQURPHARMA", "Pharmaceuticals & Chemicals"),
        ("EBL1STMF", "Mutual Funds"),
        ("LAFARGEHCL", "Cement"),
        ("ACI", "Pharmaceuticals & Chemicals"),
        ("XYZ", "Others"),
    ],
)
def test_classify_by_symbol(symbol, expected):
    assert classify_sector(symbol) == expected


def test_classify_falls_back_to_company_name():
    assert classify_sector("XYZ", "Delta Jute Mills") == "Jute"


def test_listing_sector_wins_over_heuristics():
    assert sector_of(stock("ABCBANK", 0, 0, 1, sector="Insurance")) == "Insurance"
    assert sector_of(stock("ABCBANK", 0, 0, 1)) == "Bank"


def test_summarize_sectors():
    summaries = summarize_sectors(
        [
            stock("ABCBANK", 5.5, 5.5, 1.25),
            stock("CITYBANK", -1.0, -2.0, 3.0),
            stock("DUTCHBANK", 0.0, 0.0, 0.5),
            stock("GP", 1.5, 0.52, 10.0),
        ]
    )
    assert [s.name for s in summaries] == ["Telecommunication", "Bank"]

    bank = summaries[1].to_dict()
    assert bank["valueMn"] == 4.75
    assert bank["stocks"] == 3
    assert (bank["advancers"], bank["decliners"], bank["unchanged"]) == (1, 1, 1)
    assert bank["avgChangePercent"] == 1.17
    assert bank["symbols"] == ["ABCBANK", "CITYBANK", "DUTCHBANK"]


def test_summarize_empty_market():
    assert summarize_sectors([]) == []
