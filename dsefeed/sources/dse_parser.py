"""
DSE Page Parser - Live Prices and Company Directory
===================================================

Pattern-based extraction from dsebd.org markup. There is no API and no
schema guarantee, so parsing is deliberately tolerant: malformed rows are
dropped one at a time instead of failing the whole page.
"""

import re
from typing import Dict, List, Mapping, Optional
from urllib.parse import unquote_plus

from bs4 import BeautifulSoup

from dsefeed.core.models import CompanyInfo, RawStockData
from dsefeed.utils.cleaner import DataCleaner
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

COMPANY_LINK_MARKER = "displayCompany.php?name="
MIN_PRICE_CELLS = 11

_ROW_RE = re.compile(r"<tr[^>]*>.*?</tr>", re.IGNORECASE | re.DOTALL)
_CELL_RE = re.compile(r"<td[^>]*>(.*?)</td>", re.IGNORECASE | re.DOTALL)
_COMPANY_LINK_RE = re.compile(
    r"displayCompany\.php\?name=([^\"'&>\s]+)[^>]*>(.*?)</a>", re.IGNORECASE | re.DOTALL
)
_TIMESTAMP_RE = re.compile(
    r"<h2[^>]*class=\"BodyHead topBodyHead\"[^>]*>(.*?)</h2>", re.IGNORECASE | re.DOTALL
)
_ANCHOR_RE = re.compile(
    r"<a\s[^>]*href=[\"'][^\"']*displayCompany\.php\?name=([^\"'&]+)[^\"']*[\"']([^>]*)>(.*?)</a>",
    re.IGNORECASE | re.DOTALL,
)
_TITLE_ATTR_RE = re.compile(r"title=[\"']([^\"']+)[\"']", re.IGNORECASE)
_HEADER_MARKERS = ("#", "sl", "trading")


def extract_timestamp_text(html: str) -> Optional[str]:
    """The "as of" header of the live price page, for display only."""
    match = _TIMESTAMP_RE.search(html or "")
    if not match:
        return None
    return DataCleaner.cell_text(match.group(1)) or None


def _symbol_from_row(row: str) -> Optional[str]:
    match = _COMPANY_LINK_RE.search(row)
    if not match:
        return None
    link_text = DataCleaner.cell_text(match.group(2))
    symbol = link_text or DataCleaner.decode_entities(unquote_plus(match.group(1)))
    return symbol.strip() or None


def parse_market_rows(html: str, companies: Optional[Mapping[str, CompanyInfo]] = None) -> List[RawStockData]:
    """
    Parse the live price scroll page into raw quotes.

    Column layout: # | trading code | LTP | high | low | closep | YCP |
    change | trade | value (mn) | volume. Rows without a company link, with
    fewer than 11 cells, or with all-zero prices are skipped.
    """
    companies = companies or {}
    rows: List[RawStockData] = []
    candidate_rows = 0

    for row in _ROW_RE.findall(html or ""):
        if COMPANY_LINK_MARKER not in row:
            continue
        candidate_rows += 1

        symbol = _symbol_from_row(row)
        if not symbol:
            continue

        cells = [DataCleaner.cell_text(c) for c in _CELL_RE.findall(row)]
        if len(cells) < MIN_PRICE_CELLS:
            log.debug(f"Skipping {symbol}: {len(cells)} cells")
            continue

        first_cell = cells[0].lower()
        if any(marker in first_cell for marker in _HEADER_MARKERS):
            continue

        ltp = DataCleaner.parse_number(cells[2])
        high = DataCleaner.parse_number(cells[3])
        low = DataCleaner.parse_number(cells[4])
        if ltp == 0 and high == 0 and low == 0:
            continue

        info = companies.get(symbol) or companies.get(symbol.upper())
        rows.append(
            RawStockData(
                symbol=symbol,
                name=info.name if info and info.name else symbol,
                sector=info.sector if info else "",
                category=info.category if info else "",
                ltp=ltp,
                high=high,
                low=low,
                closep=DataCleaner.parse_number(cells[5]),
                ycp=DataCleaner.parse_number(cells[6]),
                raw_change=DataCleaner.parse_number(cells[7]),
                trade=DataCleaner.parse_int(cells[8]),
                value_mn=DataCleaner.parse_number(cells[9]),
                volume=DataCleaner.parse_int(cells[10]),
            )
        )

    log.info(f"Parsed {len(rows)} stocks from {candidate_rows} company rows")
    return rows


class CompanyDirectoryParser:
    """
    Two-tier parser for the company listing page.

    The table strategy yields full records; the anchor strategy only runs when
    the tables produce nothing and degrades to names without sector/category.
    """

    def __init__(self, html: str):
        self.html = html or ""

    def parse(self) -> Dict[str, CompanyInfo]:
        companies = self.parse_listing_tables()
        if companies:
            return companies
        log.warning("Company listing tables yielded no entries, falling back to anchor scan")
        return self.parse_company_anchors()

    def parse_listing_tables(self) -> Dict[str, CompanyInfo]:
        """Positional read of serial | trading code | name | category | sector rows."""
        soup = BeautifulSoup(self.html, "lxml")
        companies: Dict[str, CompanyInfo] = {}

        for table in soup.find_all("table"):
            for tr in table.find_all("tr"):
                cells = tr.find_all("td")
                if len(cells) < 5:
                    continue
                texts = [" ".join(c.get_text(" ", strip=True).split()) for c in cells]
                if not texts[0].rstrip(".").isdigit():
                    continue

                symbol = None
                link = tr.find("a", href=lambda h: h and COMPANY_LINK_MARKER in h)
                if link is not None:
                    symbol = link.get_text(strip=True) or unquote_plus(
                        link["href"].split(COMPANY_LINK_MARKER, 1)[1].split("&", 1)[0]
                    )
                symbol = (symbol or texts[1]).strip().upper()
                if not symbol:
                    continue

                companies[symbol] = CompanyInfo(
                    symbol=symbol,
                    name=texts[2] or symbol,
                    category=texts[3],
                    sector=texts[4],
                )

        log.debug(f"Listing tables yielded {len(companies)} companies")
        return companies

    def parse_company_anchors(self) -> Dict[str, CompanyInfo]:
        """Whole-page scan of company-detail anchors; sector and category stay empty."""
        companies: Dict[str, CompanyInfo] = {}
        for raw_code, attrs, inner in _ANCHOR_RE.findall(self.html):
            symbol = DataCleaner.decode_entities(unquote_plus(raw_code)).strip().upper()
            if not symbol or symbol in companies:
                continue
            title = _TITLE_ATTR_RE.search(attrs)
            text = DataCleaner.cell_text(inner)
            if title:
                name = DataCleaner.decode_entities(title.group(1))
            elif text and text.upper() != symbol:
                name = text
            else:
                name = symbol
            companies[symbol] = CompanyInfo(symbol=symbol, name=name)

        log.info(f"Anchor scan yielded {len(companies)} companies")
        return companies
