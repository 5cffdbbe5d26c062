import html as html_lib
import re
from typing import Any, Optional

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")
_EMPTY_MARKERS = ("", "--", "-", "N/A", "n/a")


class DataCleaner:
    """
    Utility class for cleaning scraped DSE markup and numbers.
    """

    @staticmethod
    def decode_entities(value: str) -> str:
        """Decodes HTML entities (``&amp;``, ``&nbsp;``, ``&#39;``...) and trims."""
        if not value:
            return ""
        return html_lib.unescape(value).replace("\xa0", " ").strip()

    @staticmethod
    def strip_tags(value: str) -> str:
        return _TAG_RE.sub(" ", value or "")

    @classmethod
    def cell_text(cls, inner_html: str) -> str:
        """Plain text of a table cell: tags stripped, entities decoded, whitespace collapsed."""
        text = cls.decode_entities(cls.strip_tags(inner_html))
        return _WS_RE.sub(" ", text).strip()

    @staticmethod
    def parse_number(text: Any) -> float:
        """
        Locale-aware numeric parse for exchange tables.
        Thousands separators are stripped; ``--``, empty or garbage parse to 0.
        """
        if text is None:
            return 0.0
        if isinstance(text, (int, float)):
            return float(text)
        cleaned = str(text).replace(",", "").strip()
        if cleaned in _EMPTY_MARKERS:
            return 0.0
        try:
            value = float(cleaned)
        except ValueError:
            return 0.0
        if value != value or value in (float("inf"), float("-inf")):
            return 0.0
        return value

    @staticmethod
    def parse_int(text: Any) -> int:
        """Integer part of a count cell (trade count, volume)."""
        if text is None:
            return 0
        if isinstance(text, (int, float)):
            return int(text)
        cleaned = str(text).replace(",", "").strip()
        match = _LEADING_INT_RE.match(cleaned)
        return int(match.group(0)) if match else 0

    @staticmethod
    def parse_loose_number(text: Any) -> Optional[float]:
        """
        Parse a number embedded in free text (``"Tk. 1,234.5 mn"``).
        Returns None when no digits are present.
        """
        if text is None:
            return None
        cleaned = re.sub(r"[^\d.\-]", "", str(text).replace(",", ""))
        if not cleaned or cleaned in ("-", ".", "--"):
            return None
        try:
            return float(cleaned)
        except ValueError:
            match = re.search(r"-?\d+(?:\.\d+)?", cleaned)
            return float(match.group(0)) if match else None
