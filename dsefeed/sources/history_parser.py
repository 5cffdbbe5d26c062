"""
Price History Parser
====================

Finds a daily price table on a company page. Columns are mapped from the
header row when one is recognisable (date + close at minimum); otherwise rows
are read positionally as date, open, high, low, close, volume.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from dsefeed.core.models import HistoricalDataPoint
from dsefeed.core.timeframe import TIMEFRAME_SPECS, Timeframe
from dsefeed.utils.cleaner import DataCleaner
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

DATE_FORMATS = ("%d-%b-%Y", "%d/%m/%Y", "%Y-%m-%d")

POSITIONAL_COLUMNS = {"date": 0, "open": 1, "high": 2, "low": 3, "close": 4, "volume": 5}

# header keyword -> column; first keyword found in a header cell wins
HEADER_KEYWORDS = (
    ("date", "date"),
    ("open", "open"),
    ("high", "high"),
    ("low", "low"),
    ("close", "close"),
    ("ltp", "ltp"),
    ("volume", "volume"),
)


def parse_trade_date(text: str) -> Optional[datetime]:
    """Parse ``DD-MMM-YYYY``, ``DD/MM/YYYY`` or ``YYYY-MM-DD`` into a UTC midnight datetime."""
    value = (text or "").strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)
    return None


def _header_columns(cells: List[str]) -> Optional[Dict[str, int]]:
    columns: Dict[str, int] = {}
    for idx, label in enumerate(cells):
        label = label.lower()
        for keyword, column in HEADER_KEYWORDS:
            if keyword in label and column not in columns:
                columns[column] = idx
                break
    if "close" not in columns and "ltp" in columns:
        columns["close"] = columns["ltp"]
    if "date" in columns and "close" in columns:
        return columns
    return None


def _row_to_point(cells: List[str], columns: Dict[str, int]) -> Optional[HistoricalDataPoint]:
    if len(cells) <= max(columns[c] for c in ("date", "close")):
        return None
    date = parse_trade_date(cells[columns["date"]])
    if date is None:
        return None
    close = DataCleaner.parse_number(cells[columns["close"]])
    if close <= 0:
        return None

    def _num(column: str) -> float:
        idx = columns.get(column)
        if idx is None or idx >= len(cells):
            return 0.0
        return DataCleaner.parse_number(cells[idx])

    open_ = _num("open") or close
    high = max(_num("high") or close, open_, close)
    low = min(_num("low") or close, open_, close)
    volume_idx = columns.get("volume")
    volume = DataCleaner.parse_int(cells[volume_idx]) if volume_idx is not None and volume_idx < len(cells) else 0
    return HistoricalDataPoint(date=date, open=open_, high=high, low=low, close=close, volume=max(volume, 0))


def parse_price_history(html: str) -> List[HistoricalDataPoint]:
    """All dated price rows of the first table that yields any, sorted ascending."""
    soup = BeautifulSoup(html or "", "lxml")

    for table in soup.find_all("table"):
        rows = table.find_all("tr")
        if not rows:
            continue
        header = [c.get_text(" ", strip=True) for c in rows[0].find_all(["th", "td"])]
        columns = _header_columns(header)
        body = rows[1:] if columns else rows
        columns = columns or POSITIONAL_COLUMNS

        points = []
        for tr in body:
            cells = [c.get_text(" ", strip=True) for c in tr.find_all("td")]
            point = _row_to_point(cells, columns)
            if point is not None:
                points.append(point)

        if points:
            log.debug(f"Price history table yielded {len(points)} rows")
            return sort_unique(points)

    return []


def sort_unique(points: Iterable[HistoricalDataPoint]) -> List[HistoricalDataPoint]:
    by_date = {p.date: p for p in points}
    return [by_date[d] for d in sorted(by_date)]


def filter_to_timeframe(points: List[HistoricalDataPoint], timeframe: Timeframe) -> List[HistoricalDataPoint]:
    """Keep points within the timeframe window measured back from the latest date in the data."""
    if not points:
        return []
    lookback = TIMEFRAME_SPECS[timeframe].lookback_days
    ordered = sort_unique(points)
    if lookback is None:
        return ordered
    cutoff = ordered[-1].date - timedelta(days=lookback)
    return [p for p in ordered if p.date >= cutoff]
