"""
News Parser - DSE archive and company announcement tables
=========================================================
"""

import re
from datetime import date, datetime
from typing import List, Optional

from bs4 import BeautifulSoup

from dsefeed.core.models import NewsItem
from dsefeed.utils.cleaner import DataCleaner
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

ARCHIVE_SOURCE = "DSE News Archive"
COMPANY_SOURCE = "DSE Corporate"

DATE_RE = re.compile(r"(\d{1,2}[-/][A-Za-z]{3}[-/]\d{2,4}|\d{1,2}[-/]\d{1,2}[-/]\d{2,4})")
QUARTER_RE = re.compile(r"\bQ([1-4])\b", re.IGNORECASE)
ANNOUNCEMENT_SECTION_RE = re.compile(
    r"(?:News|Declaration|Announcement|Price\s*Sensitive).*?(<table.*?</table>)", re.IGNORECASE | re.DOTALL
)

ARCHIVE_MIN_CHARS = 30
COMPANY_MIN_CHARS = 20
COMPANY_MAX_SECTIONS = 2
COMPANY_MAX_ROWS = 10

# first keyword found in the lower-cased text picks the tag
TOPIC_TAGS = (
    ("dividend", "Dividend"),
    ("agm", "AGM"),
    ("bonus", "Bonus"),
    ("right", "Right Share"),
)


def display_date(value: date) -> str:
    """``January 16, 2026``"""
    return f"{value:%B} {value.day}, {value.year}"


def normalize_news_date(text: str) -> Optional[str]:
    """
    Reformat the first ``DD-MMM-YY(YY)`` or ``DD/MM/YY(YY)`` date in ``text``.

    Two-digit years are taken as 20xx. Returns None when no valid date is found.
    """
    match = DATE_RE.search(text or "")
    if not match:
        return None
    raw = match.group(1).replace("/", "-")
    day, month, year = raw.split("-")
    if len(year) == 2:
        year = f"20{year}"
    fmt = "%d-%b-%Y" if month.isalpha() else "%d-%m-%Y"
    try:
        parsed = datetime.strptime(f"{day}-{month}-{year}", fmt)
    except ValueError:
        return None
    return display_date(parsed.date())


def topic_title(symbol: str, content: str) -> str:
    symbol = symbol.upper()
    quarter = QUARTER_RE.search(content)
    if quarter:
        return f"{symbol} - Q{quarter.group(1)}"
    lowered = content.lower()
    for keyword, tag in TOPIC_TAGS:
        if keyword in lowered:
            return f"{symbol} - {tag}"
    if "continuation" in lowered or "cont." in lowered:
        return f"{symbol} (Continuation)"
    return symbol


def _leaf_rows(soup: BeautifulSoup):
    return [tr for tr in soup.find_all("tr") if tr.find("tr") is None]


def _row_item(cells: List[str], min_chars: int):
    """(published date, content) of a row; content is the last long non-date cell."""
    published = None
    content = None
    for text in cells:
        if DATE_RE.search(text):
            if published is None:
                published = normalize_news_date(text)
            continue
        if len(text) > min_chars:
            content = text
    return published, content


def _cells(tr) -> List[str]:
    return [DataCleaner.cell_text(td.decode_contents()) for td in tr.find_all("td")]


def parse_archive_news(html: str, symbol: str, url: str, today: date) -> List[NewsItem]:
    """Archive rows that mention ``symbol`` as a whole word."""
    symbol_re = re.compile(rf"\b{re.escape(symbol.upper())}\b", re.IGNORECASE)
    soup = BeautifulSoup(html or "", "lxml")
    items = []

    for tr in _leaf_rows(soup):
        if not symbol_re.search(tr.get_text(" ")):
            continue
        published, content = _row_item(_cells(tr), ARCHIVE_MIN_CHARS)
        if not content:
            continue
        items.append(
            NewsItem(
                title=topic_title(symbol, content),
                source=ARCHIVE_SOURCE,
                url=url,
                published_at=published or display_date(today),
                summary=content,
            )
        )

    log.debug(f"News archive: {len(items)} rows for {symbol}")
    return items


def parse_company_announcements(html: str, symbol: str, url: str, today: date) -> List[NewsItem]:
    """Rows of the first announcement-like tables on the company page; header rows skipped."""
    items = []
    for section in ANNOUNCEMENT_SECTION_RE.findall(html or "")[:COMPANY_MAX_SECTIONS]:
        soup = BeautifulSoup(section, "lxml")
        for tr in _leaf_rows(soup)[:COMPANY_MAX_ROWS]:
            if tr.find("th") is not None:
                continue
            published, content = _row_item(_cells(tr), COMPANY_MIN_CHARS)
            if not content:
                continue
            items.append(
                NewsItem(
                    title=topic_title(symbol, content),
                    source=COMPANY_SOURCE,
                    url=url,
                    published_at=published or display_date(today),
                    summary=content,
                )
            )

    log.debug(f"Company page: {len(items)} announcements for {symbol}")
    return items
