from datetime import datetime
from typing import Dict, Iterable, List, Tuple, Union

import httpx
import pytz

from dsefeed.core.fetcher import Fetcher
from dsefeed.core.market_hours import MarketClock

DHAKA = pytz.timezone("Asia/Dhaka")

MARKET_PATH = "/latest_share_price_scroll_by_ltp.php"
LISTING_PATH = "/company_listing.php"
COMPANY_PATH = "/displayCompany.php"
NEWS_PATH = "/news_archive.php"


def market_row(sl, symbol, ltp, high, low, closep, ycp, change=0.0, trade=120, value_mn=1.25, volume=15000):
    cells = [
        str(sl),
        f'<a href="displayCompany.php?name={symbol}" class="ab1">{symbol}</a>',
        ltp,
        high,
        low,
        closep,
        ycp,
        change,
        trade,
        value_mn,
        f"{volume:,}" if isinstance(volume, int) else volume,
    ]
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def market_page(*rows: str, stamp: str = "Latest Share Price On Oct 15, 2026 at 2:30 PM") -> str:
    header = (
        "<tr><th>#</th><th>TRADING CODE</th><th>LTP*</th><th>HIGH</th><th>LOW</th><th>CLOSEP*</th>"
        "<th>YCP*</th><th>CHANGE</th><th>TRADE</th><th>VALUE (mn)</th><th>VOLUME</th></tr>"
    )
    return (
        "<html><body>"
        f'<h2 class="BodyHead topBodyHead">{stamp}</h2>'
        f'<table class="table shares-table">{header}{"".join(rows)}</table>'
        "</body></html>"
    )


def listing_page(entries: Iterable[Tuple[str, str, str, str]]) -> str:
    """entries: (symbol, name, category, sector)"""
    body = "".join(
        f'<tr><td>{i}</td><td><a href="displayCompany.php?name={symbol}">{symbol}</a></td>'
        f"<td>{name}</td><td>{category}</td><td>{sector}</td></tr>"
        for i, (symbol, name, category, sector) in enumerate(entries, start=1)
    )
    return (
        "<html><body><table>"
        "<tr><th>SL</th><th>Trading Code</th><th>Company Name</th><th>Category</th><th>Sector</th></tr>"
        f"{body}</table></body></html>"
    )


DEFAULT_LISTING = [
    ("ABCBANK", "ABC Bank Limited", "A", "Bank"),
    ("GP", "Grameenphone Ltd.", "A", "Telecommunication"),
    ("SQURPHARMA", "Square Pharmaceuticals PLC", "A", "Pharmaceuticals & Chemicals"),
]

DEFAULT_MARKET = market_page(
    market_row(1, "GP", "290.50", "292.00", "288.00", "290.00", "289.00", volume=250000),
    market_row(2, "ABCBANK", "105.50", "107.00", "104.00", "105.00", "100.00", volume=43210),
    market_row(3, "SQURPHARMA", "210.00", "212.00", "208.50", "209.80", "211.00"),
)


Reply = Union[str, int, Exception, Tuple[int, str]]


class StubSite:
    """
    Canned dsebd.org: path -> list of replies consumed in order (the last one repeats).

    A reply is HTML (200), a status code, a ``(status, body)`` pair, or an
    exception class/instance raised as a transport error.
    """

    def __init__(self, routes: Dict[str, Union[Reply, List[Reply]]]):
        self.routes = {path: list(r) if isinstance(r, list) else [r] for path, r in routes.items()}
        self.hits: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []

    def set(self, path: str, *replies: Reply):
        self.routes[path] = list(replies)

    def count(self, path: str) -> int:
        return self.hits.get(path, 0)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(request)
        self.hits[path] = self.hits.get(path, 0) + 1
        replies = self.routes.get(path)
        if not replies:
            return httpx.Response(404, text="not found")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]

        if isinstance(reply, type) and issubclass(reply, Exception):
            raise reply("stubbed transport failure", request=request)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, text=f"status {reply}")
        if isinstance(reply, tuple):
            status, body = reply
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=reply)

    def fetcher(self, sleeps: List[float] = None) -> Fetcher:
        recorded = sleeps if sleeps is not None else []

        async def fake_sleep(seconds: float):
            recorded.append(seconds)

        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return Fetcher(client=client, sleep=fake_sleep, max_jitter=0, timeout=5)


class FakeClock:
    """Millisecond clock for TTLCache."""

    def __init__(self, start_ms: int = 1_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float):
        self.now_ms += int(seconds * 1000)


def dhaka(year, month, day, hour=0, minute=0) -> datetime:
    return DHAKA.localize(datetime(year, month, day, hour, minute))


def clock_at(moment: datetime) -> MarketClock:
    return MarketClock(now=lambda: moment)


# 2026-10-15 is a Thursday
OPEN_CLOCK = clock_at(dhaka(2026, 10, 15, 11, 0))
CLOSED_CLOCK = clock_at(dhaka(2026, 10, 15, 16, 0))
FRIDAY_CLOCK = clock_at(dhaka(2026, 10, 16, 11, 0))
