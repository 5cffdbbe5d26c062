"""Core services exposed for external consumers."""

from .errors import DseFeedError, FetchError, NotFoundError, ParseError, ValidationError
from .market_hours import is_market_open
from .pricing import compute_stock_data

__all__ = [
    "DseFeedError",
    "FetchError",
    "NotFoundError",
    "ParseError",
    "ValidationError",
    "is_market_open",
    "compute_stock_data",
]
