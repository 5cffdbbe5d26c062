"""
DSE feed error hierarchy for clear classification in logs and API responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DseFeedError(Exception):
    """Base class for all market feed errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        symbol: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.symbol = symbol
        self.details = details or {}

    def as_dict(self) -> Dict[str, Any]:
        """Serializable representation for logs."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "symbol": self.symbol,
            "details": self.details,
        }


class FetchError(DseFeedError):
    """Raised when an upstream HTTP request fails or times out."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        timeout: bool = False,
        network: bool = False,
        attempt: Optional[int] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.url = url
        self.upstream_status = status_code
        self.timeout = timeout
        self.network = network
        self.attempt = attempt
        if url is not None:
            self.details["url"] = url
        if status_code is not None:
            self.details["status_code"] = status_code
        if timeout:
            self.details["timeout"] = True

    @property
    def retryable(self) -> bool:
        if self.timeout or self.network:
            return True
        if self.upstream_status is None:
            return False
        return self.upstream_status == 429 or self.upstream_status >= 500


class ParseError(DseFeedError):
    """Raised when upstream markup matches none of the known patterns."""

    def __init__(self, message: str, *, source: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.source = source
        if source is not None:
            self.details["source"] = source


class ValidationError(DseFeedError):
    """Raised on malformed or missing request parameters."""

    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.expected = expected
        if field is not None:
            self.details["field"] = field
        if expected is not None:
            self.details["expected"] = expected


class NotFoundError(DseFeedError):
    """Raised when a symbol is absent from the market snapshot."""

    status_code = 404


class ConfigError(DseFeedError):
    """Raised on missing/invalid configuration values."""

    def __init__(self, message: str, *, key: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.key = key
        if key is not None:
            self.details["key"] = key
