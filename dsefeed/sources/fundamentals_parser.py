"""
Fundamentals Parser - Company Page Valuation Metrics
====================================================

Each field owns an ordered list of candidate rules. Rules are tried in order
until one produces a value; a field that matches nothing (or whose converter
rejects the match) stays ``None`` without affecting any other field.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple

from dsefeed.core.models import StockFundamentals
from dsefeed.utils.cleaner import DataCleaner
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

_I = re.IGNORECASE
_CELL_RE = re.compile(r"<td[^>]*>(.*?)</td>", _I | re.DOTALL)
_ROW_RE = re.compile(r"<tr[^>]*>.*?</tr>", _I | re.DOTALL)
_SCRIPT_MARKERS = ("function", "window", "<script", "{", "}")


def _text(value: str) -> Optional[str]:
    text = DataCleaner.cell_text(value)
    return text or None


def _number(value: str) -> Optional[float]:
    return DataCleaner.parse_loose_number(value)


def _year(value: str) -> Optional[int]:
    year = int(value)
    return year if 1900 <= year <= 2100 else None


@dataclass(frozen=True)
class FieldRule:
    """One candidate pattern for a field; ``group`` 1 feeds the converter."""

    pattern: Pattern
    convert: Callable[[str], Any]

    def apply(self, html: str) -> Optional[Any]:
        match = self.pattern.search(html)
        if not match or not match.group(1):
            return None
        return self.convert(match.group(1))


def _rules(convert: Callable[[str], Any], *patterns: str) -> List[FieldRule]:
    return [FieldRule(re.compile(p, _I), convert) for p in patterns]


FIELD_RULES: Dict[str, List[FieldRule]] = {
    "sector": _rules(
        _text,
        r"Sector[:\s]*</th>\s*<td[^>]*>([^<]+)<",
        r"Sector[:\s]*</td>\s*<td[^>]*>([^<]+)<",
        r">Sector</[^>]+>\s*<[^>]+>([^<]+)<",
    ),
    "category": _rules(
        _text,
        r"(?:Share\s*)?Category[:\s]*</th>\s*<td[^>]*>([^<]+)<",
        r"Category[:\s]*</td>\s*<td[^>]*>([^<]+)<",
    ),
    "market_cap": _rules(
        _number,
        r"Market\s*Cap(?:italization)?\s*\(mn\)[^<]*</t[hd]>\s*<td[^>]*>\s*([\d,.-]+)",
        r"Market\s*Cap(?:italization)?[^<]*</th>\s*<td[^>]*>\s*([\d,.-]+)",
        r"Market\s*Cap[^|<]*\|\s*([\d,.-]+)",
    ),
    "authorized_cap": _rules(
        _number,
        r"Authori[sz]ed\s*Capital[^<]*</t[hd]>\s*<td[^>]*>\s*([\d,.-]+)",
    ),
    "paid_up_cap": _rules(
        _number,
        r"Paid[- ]?up\s*Capital[^<]*</t[hd]>\s*<td[^>]*>\s*([\d,.-]+)",
    ),
    "face_value": _rules(
        _number,
        r"Face(?:/Par)?\s*Value[^<]*</t[hd]>\s*<td[^>]*>\s*([\d,.-]+)",
    ),
    "listing_year": _rules(
        _year,
        r"Listing\s*Year[^<]*</t[hd]>\s*<td[^>]*>\s*(\d{4})",
    ),
}

PE_ROW_PATTERNS: Sequence[Pattern] = [
    re.compile(r"Current\s*P/E\s*Ratio\s*using\s*Basic\s*EPS[^<]*</td>((?:\s*<td[^>]*>[^<]*</td>)+)", _I),
    re.compile(r"Trailing\s*P/E\s*Ratio[^<]*</td>((?:\s*<td[^>]*>[^<]*</td>)+)", _I),
    re.compile(r"Current\s*P/E\s*Ratio[^<]*</td>((?:\s*<td[^>]*>[^<]*</td>)+)", _I),
]
PE_FALLBACK = re.compile(r"P/E\s*Ratio[^<]*(?:<[^>]+>)+\s*([\d,.]+)", _I)
PE_MAX = 10000

FIN_PERF_TABLE = re.compile(r"Financial\s*Performance\s*as\s*per\s*Audited.*?(<table.*?</table>)", _I | re.DOTALL)
FIN_PERF_YEAR = re.compile(r"<td[^>]*>\s*(20[2-3]\d)\s*</td>", _I)
EPS_COLUMN = 4
NAV_COLUMN = 7

EPS_FALLBACKS = _rules(
    _number,
    r"EPS\s*\(Basic\)[^<]*(?:<[^>]+>)+\s*([\d,.()-]+)",
    r"Earnings?\s*per\s*share[^<]*(?:<[^>]+>)+\s*([\d,.()-]+)",
)
NAV_FALLBACKS = _rules(
    _number,
    r"NAV[^<]*(?:<[^>]+>)+\s*([\d,.()-]+)",
    r"Net\s*Asset\s*Value[^<]*(?:<[^>]+>)+\s*([\d,.()-]+)",
)

RANGE_PATTERNS: Sequence[Pattern] = [
    re.compile(r"52\s*Weeks['’]?\s*Moving\s*Range[^<]*</t[hd]>\s*<td[^>]*>\s*([\d,.]+)\s*-\s*([\d,.]+)", _I),
    re.compile(r"52\s*Weeks['’]?\s*Moving\s*Range[^|]*\|\s*([\d,.]+)\s*-\s*([\d,.]+)", _I),
    re.compile(r">52\s*Weeks['’]?\s*Moving\s*Range<[^>]*>[^<]*<[^>]*>\s*([\d,.]+)\s*-\s*([\d,.]+)", _I),
]

AGM_PATTERN = re.compile(r"(?:Last\s*)?AGM\s*Held\s*On[^<]*</t[hd]>\s*<td[^>]*>([^<]+)<", _I)


class FundamentalsParser:
    """
    Parser for a DSE company detail page (``displayCompany.php``).
    """

    def __init__(self, html: str, symbol: str):
        # Entity-decode once so patterns see "-" rather than "&ndash;"
        self.html = (html or "").replace("&ndash;", "-").replace("&mdash;", "-").replace("&nbsp;", " ")
        self.symbol = symbol.upper()

    def parse(self) -> StockFundamentals:
        result = StockFundamentals(symbol=self.symbol)

        for field_name, rules in FIELD_RULES.items():
            setattr(result, field_name, self._first_match(field_name, rules))

        result.pe = self._guarded("pe", self.extract_pe_ratio)

        eps_nav = self._guarded("eps/nav", self.extract_eps_nav) or (None, None)
        result.eps, result.nav = eps_nav

        year_range = self._guarded("52w range", self.extract_52_week_range) or (None, None)
        result.year_low, result.year_high = year_range

        result.last_agm = self._guarded("agm", self.extract_last_agm)

        found = [k for k, v in result.to_dict().items() if k != "symbol"]
        log.info(f"Parsed fundamentals for {self.symbol}: {', '.join(found) or 'nothing'}")
        return result

    def _first_match(self, field_name: str, rules: Sequence[FieldRule]) -> Optional[Any]:
        for rule in rules:
            try:
                value = rule.apply(self.html)
            except (ValueError, TypeError) as e:
                log.debug(f"{self.symbol}: rule for {field_name} rejected match: {e}")
                continue
            if value is not None:
                return value
        return None

    def _guarded(self, label: str, extractor: Callable[[], Any]) -> Any:
        try:
            return extractor()
        except (ValueError, TypeError, IndexError) as e:
            log.debug(f"{self.symbol}: {label} extraction failed: {e}")
            return None

    def extract_pe_ratio(self) -> Optional[float]:
        """Most recent P/E: the last plausible value of the first matching row."""
        for pattern in PE_ROW_PATTERNS:
            match = pattern.search(self.html)
            if not match:
                continue
            values = [DataCleaner.parse_number(DataCleaner.cell_text(c)) for c in _CELL_RE.findall(match.group(1))]
            for value in reversed(values):
                if 0 < value < PE_MAX:
                    return value

        match = PE_FALLBACK.search(self.html)
        if match:
            value = DataCleaner.parse_number(match.group(1))
            if 0 < value < PE_MAX:
                return value
        return None

    def extract_eps_nav(self) -> Tuple[Optional[float], Optional[float]]:
        eps: Optional[float] = None
        nav: Optional[float] = None

        table_match = FIN_PERF_TABLE.search(self.html)
        if table_match:
            rows = _ROW_RE.findall(table_match.group(1))
            for row in reversed(rows):
                if not FIN_PERF_YEAR.search(row):
                    continue
                cells = _CELL_RE.findall(row)
                if len(cells) <= NAV_COLUMN:
                    continue
                eps = DataCleaner.parse_loose_number(DataCleaner.cell_text(cells[EPS_COLUMN])) or None
                nav = DataCleaner.parse_loose_number(DataCleaner.cell_text(cells[NAV_COLUMN])) or None
                if eps or nav:
                    return eps, nav

        if eps is None:
            eps = self._first_match("eps", EPS_FALLBACKS) or None
        if nav is None:
            nav = self._first_match("nav", NAV_FALLBACKS) or None
        return eps, nav

    def extract_52_week_range(self) -> Tuple[Optional[float], Optional[float]]:
        """(low, high); the page does not guarantee the order of the two ends."""
        for pattern in RANGE_PATTERNS:
            match = pattern.search(self.html)
            if match:
                first = DataCleaner.parse_number(match.group(1))
                second = DataCleaner.parse_number(match.group(2))
                return min(first, second), max(first, second)
        return None, None

    def extract_last_agm(self) -> Optional[str]:
        match = AGM_PATTERN.search(self.html)
        if not match:
            return None
        value = DataCleaner.decode_entities(match.group(1))
        if not re.search(r"\d", value):
            return None
        if any(marker in value.lower() for marker in _SCRIPT_MARKERS):
            return None
        return value
