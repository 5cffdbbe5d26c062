"""
Synthetic price history.

Used when no real history is available so a chart can still be drawn. The
walk is anchored to the day's known range: every close stays inside
``[low * 0.85, high * 1.15]`` and the final close is the current price.
"""

import random
from datetime import datetime, timezone
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import List, Optional

from dsefeed.core.models import HistoricalDataPoint
from dsefeed.core.pricing import round2
from dsefeed.core.timeframe import TIMEFRAME_SPECS, Timeframe

BAND_LOW = 0.85
BAND_HIGH = 1.15
START_LOW = 0.9
START_HIGH = 1.1
MIN_VOLATILITY = 0.01


def _ceil2(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_CEILING))


def _floor2(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_FLOOR))


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def synthesize_series(
    current_price: float,
    high_price: float,
    low_price: float,
    volume: int,
    timeframe: Timeframe,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[HistoricalDataPoint]:
    """
    Bounded random walk ending at ``current_price``.

    Args:
        current_price: Last known price; becomes the final close exactly
        high_price / low_price: Known range; widened to include current_price
        volume: Typical volume per bar (split across bars for 1D)
        timeframe: Controls point count and spacing
        now: Timestamp of the final point
        rng: Random source, seeded in tests
    """
    spec = TIMEFRAME_SPECS[timeframe]
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    intraday = timeframe is Timeframe.ONE_DAY

    low, high = sorted((low_price, high_price))
    low = min(low, current_price)
    high = max(high, current_price)

    band_lo, band_hi = low * BAND_LOW, high * BAND_HIGH
    close_lo, close_hi = _ceil2(band_lo), _floor2(band_hi)

    price_range = high - low
    volatility = price_range / current_price if current_price > 0 else 0.0
    step_volatility = max(MIN_VOLATILITY, volatility * 0.3)

    price = current_price - price_range * 0.8 * (rng.random() - 0.3)
    price = _clamp(price, low * START_LOW, high * START_HIGH)

    n = spec.points
    points: List[HistoricalDataPoint] = []
    for i in range(n):
        timestamp = now - spec.interval * (n - 1 - i)

        drift = (current_price - price) / (n - i + 1) * 0.5
        noise = (rng.random() - 0.5) * 2 * price * step_volatility

        open_ = price
        price = _clamp(price + drift + noise, band_lo, band_hi)

        is_last = i == n - 1
        close = current_price if is_last else _clamp(round2(price), close_lo, close_hi)
        open_ = round2(open_)

        bar_volatility = price * step_volatility * (0.2 if intraday else 1.0)
        bar_high = round2(max(open_, close) + rng.random() * bar_volatility)
        bar_low = round2(max(0.0, min(open_, close) - rng.random() * bar_volatility))

        bar_volume = int(volume * (0.5 + rng.random()) / (n if intraday else 1))

        points.append(
            HistoricalDataPoint(
                date=timestamp,
                open=open_,
                high=max(bar_high, open_, close),
                low=min(bar_low, open_, close),
                close=close,
                volume=max(bar_volume, 0),
            )
        )

    return points
