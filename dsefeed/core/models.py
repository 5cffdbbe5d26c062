"""Normalized market records shared by the scrapers, services and API."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional


@dataclass(frozen=True)
class CompanyInfo:
    symbol: str
    name: str
    sector: str = ""
    category: str = ""


@dataclass(frozen=True)
class RawStockData:
    """One row of the live price page, as scraped."""

    symbol: str
    name: str
    sector: str
    category: str
    ltp: float
    high: float
    low: float
    closep: float
    ycp: float
    raw_change: float
    trade: int
    value_mn: float
    volume: int


@dataclass(frozen=True)
class StockData:
    """UI-facing quote; ``change``/``change_percent`` are derived, never scraped."""

    symbol: str
    name: str
    sector: str
    category: str
    ltp: float
    change: float
    change_percent: float
    volume: int
    high: float
    low: float
    closep: float
    ycp: float
    trade: int
    value_mn: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "sector": self.sector,
            "category": self.category,
            "ltp": self.ltp,
            "change": self.change,
            "changePercent": self.change_percent,
            "volume": self.volume,
            "high": self.high,
            "low": self.low,
            "closep": self.closep,
            "ycp": self.ycp,
            "trade": self.trade,
            "valueMn": self.value_mn,
        }


@dataclass(frozen=True)
class MarketSnapshot:
    raw_stocks: List[RawStockData]
    timestamp_text: Optional[str] = None


@dataclass
class StockFundamentals:
    """Valuation snapshot. Every field except ``symbol`` is independently optional."""

    symbol: str
    market_cap: Optional[float] = None
    authorized_cap: Optional[float] = None
    paid_up_cap: Optional[float] = None
    face_value: Optional[float] = None
    pe: Optional[float] = None
    eps: Optional[float] = None
    nav: Optional[float] = None
    listing_year: Optional[int] = None
    year_high: Optional[float] = None
    year_low: Optional[float] = None
    last_agm: Optional[str] = None
    sector: Optional[str] = None
    category: Optional[str] = None

    WIRE_KEYS: ClassVar[Dict[str, str]] = {
        "symbol": "symbol",
        "market_cap": "marketCap",
        "authorized_cap": "authorizedCap",
        "paid_up_cap": "paidUpCap",
        "face_value": "faceValue",
        "pe": "pe",
        "eps": "eps",
        "nav": "nav",
        "listing_year": "listingYear",
        "year_high": "yearHigh",
        "year_low": "yearLow",
        "last_agm": "lastAGM",
        "sector": "sector",
        "category": "category",
    }

    def to_dict(self) -> Dict[str, Any]:
        """Wire form; unset fields are omitted."""
        return {self.WIRE_KEYS[k]: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class HistoricalDataPoint:
    date: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class HistoricalSeries:
    """A price series tagged with where it came from."""

    points: List[HistoricalDataPoint] = field(default_factory=list)

    source: ClassVar[str] = "unknown"

    def __len__(self) -> int:
        return len(self.points)

    def to_list(self) -> List[Dict[str, Any]]:
        return [point.to_dict() for point in self.points]


@dataclass(frozen=True)
class RealSeries(HistoricalSeries):
    """Scraped from the exchange's own price-history table."""

    source: ClassVar[str] = "dse"


@dataclass(frozen=True)
class StoredSeries(HistoricalSeries):
    """Read back from the daily price store."""

    source: ClassVar[str] = "database"


@dataclass(frozen=True)
class SynthesizedSeries(HistoricalSeries):
    """Bounded random walk anchored to the known day range; never real data."""

    source: ClassVar[str] = "simulated"


@dataclass(frozen=True)
class NewsItem:
    title: str
    source: str
    url: str
    published_at: str
    summary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "title": self.title,
            "source": self.source,
            "url": self.url,
            "publishedAt": self.published_at,
        }
        if self.summary is not None:
            payload["summary"] = self.summary
        return payload


@dataclass(frozen=True)
class DailyPrice:
    """One end-of-day bar destined for the price store."""

    symbol: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int

    def to_point(self) -> HistoricalDataPoint:
        return HistoricalDataPoint(
            date=datetime(self.date.year, self.date.month, self.date.day, tzinfo=timezone.utc),
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )
