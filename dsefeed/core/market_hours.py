"""
Trading-session utilities for the Dhaka Stock Exchange.

The exchange trades Sunday through Thursday; the session window is expressed
in minutes since local midnight so it can be configured without code changes.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, FrozenSet, Optional

import pytz

from dsefeed.core.config import Config

# Python weekday numbering: Monday=0 ... Sunday=6
SUNDAY_TO_THURSDAY = frozenset({6, 0, 1, 2, 3})


@dataclass(frozen=True)
class MarketHours:
    timezone: str = "Asia/Dhaka"
    open_minutes: int = 600
    close_minutes: int = 870
    trading_weekdays: FrozenSet[int] = field(default_factory=lambda: SUNDAY_TO_THURSDAY)

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    @classmethod
    def from_config(cls) -> "MarketHours":
        market_cfg = Config.get("market", default={}) or {}
        return cls(
            timezone=market_cfg.get("timezone", "Asia/Dhaka"),
            open_minutes=int(market_cfg.get("open_minutes", 600)),
            close_minutes=int(market_cfg.get("close_minutes", 870)),
            trading_weekdays=frozenset(market_cfg.get("trading_weekdays", SUNDAY_TO_THURSDAY)),
        )


def exchange_now(hours: Optional[MarketHours] = None, now: Optional[datetime] = None) -> datetime:
    """``now`` (default: current time) expressed in the exchange timezone.

    Naive datetimes are taken to be UTC.
    """
    hours = hours or MarketHours()
    if now is None:
        now = datetime.now(pytz.utc)
    elif now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(hours.tz)


def is_trading_day(now: Optional[datetime] = None, hours: Optional[MarketHours] = None) -> bool:
    hours = hours or MarketHours()
    return exchange_now(hours, now).weekday() in hours.trading_weekdays


def is_market_open(now: Optional[datetime] = None, hours: Optional[MarketHours] = None) -> bool:
    """
    True while the trading session is running.

    Args:
        now: Instant to check (defaults to the current time)
        hours: Session definition (defaults to Sunday-Thursday 10:00-14:30 Asia/Dhaka)
    """
    hours = hours or MarketHours()
    local = exchange_now(hours, now)
    if local.weekday() not in hours.trading_weekdays:
        return False
    minutes = local.hour * 60 + local.minute
    return hours.open_minutes <= minutes <= hours.close_minutes


def exchange_today(now: Optional[datetime] = None, hours: Optional[MarketHours] = None) -> date:
    return exchange_now(hours, now).date()


class MarketClock:
    """Bundles session hours with a time source so services can be tested at fixed instants."""

    def __init__(self, hours: Optional[MarketHours] = None, now: Optional[Callable[[], datetime]] = None):
        self.hours = hours or MarketHours()
        self._now = now or (lambda: datetime.now(pytz.utc))

    def now(self) -> datetime:
        return self._now()

    def is_open(self) -> bool:
        return is_market_open(self._now(), self.hours)

    def is_trading_day(self) -> bool:
        return is_trading_day(self._now(), self.hours)

    def today(self) -> date:
        return exchange_today(self._now(), self.hours)
