from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional

from dsefeed.core.errors import ValidationError


class Timeframe(str, Enum):
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    TEN_YEARS = "10Y"
    MAX = "MAX"

    @classmethod
    def parse(cls, value: Optional[str], default: "Timeframe" = None) -> "Timeframe":
        if value is None or str(value).strip() == "":
            if default is None:
                raise ValidationError("timeframe is required", field="timeframe")
            return default
        normalized = str(value).strip().upper()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(
            f"Unsupported timeframe: {value}",
            field="timeframe",
            expected=[m.value for m in cls],
        )


@dataclass(frozen=True)
class TimeframeSpec:
    """Real-data window (calendar days back from the latest bar) and synthetic shape."""

    lookback_days: Optional[int]
    points: int
    interval: timedelta


DAY = timedelta(days=1)

TIMEFRAME_SPECS: Dict[Timeframe, TimeframeSpec] = {
    Timeframe.ONE_DAY: TimeframeSpec(lookback_days=7, points=78, interval=timedelta(minutes=5)),
    Timeframe.ONE_WEEK: TimeframeSpec(lookback_days=14, points=5, interval=DAY),
    Timeframe.ONE_MONTH: TimeframeSpec(lookback_days=30, points=22, interval=DAY),
    Timeframe.THREE_MONTHS: TimeframeSpec(lookback_days=91, points=66, interval=DAY),
    Timeframe.SIX_MONTHS: TimeframeSpec(lookback_days=182, points=132, interval=DAY),
    Timeframe.ONE_YEAR: TimeframeSpec(lookback_days=365, points=252, interval=DAY),
    Timeframe.TEN_YEARS: TimeframeSpec(lookback_days=3652, points=2520, interval=DAY),
    Timeframe.MAX: TimeframeSpec(lookback_days=None, points=5000, interval=DAY),
}
