"""End-of-day price capture and bulk import into the price store."""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from dsefeed.core.context import ServiceContext
from dsefeed.core.errors import ConfigError
from dsefeed.core.models import DailyPrice, RawStockData
from dsefeed.core.pricing import round1
from dsefeed.db.repository import PriceRepository
from dsefeed.utils.cleaner import DataCleaner
from dsefeed.utils.logger import get_logger, log_execution_time

log = get_logger(__name__)


def daily_record(raw: RawStockData, trade_date: date) -> Optional[DailyPrice]:
    """Bar for ``trade_date`` from a snapshot row; None when nothing traded."""
    if not raw.symbol or raw.ltp <= 0:
        return None
    return DailyPrice(
        symbol=raw.symbol.upper(),
        date=trade_date,
        open=round1(raw.closep or raw.ltp),
        high=round1(raw.high or raw.ltp),
        low=round1(raw.low or raw.ltp),
        close=round1(raw.ltp),
        volume=max(0, int(raw.volume or 0)),
    )


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def validate_import_records(records: Iterable[Any]) -> List[DailyPrice]:
    """
    Normalise uploaded bars; records without symbol, a valid date or a positive close are dropped.

    Open defaults to close and high/low are widened to contain open and close.
    """
    valid = []
    for record in records:
        if not isinstance(record, dict):
            continue
        symbol = str(record.get("symbol") or "").strip().upper()
        trade_date = _parse_date(record.get("date")) if record.get("date") else None
        close = DataCleaner.parse_number(record.get("close"))
        if not symbol or trade_date is None or close <= 0:
            continue

        open_ = max(0.0, DataCleaner.parse_number(record.get("open")) or close)
        high = max(DataCleaner.parse_number(record.get("high")) or close, open_, close)
        low = min(DataCleaner.parse_number(record.get("low")) or close, open_, close)
        valid.append(
            DailyPrice(
                symbol=symbol,
                date=trade_date,
                open=round1(open_),
                high=round1(high),
                low=round1(low),
                close=round1(close),
                volume=max(0, DataCleaner.parse_int(record.get("volume"))),
            )
        )
    return valid


def _require_database(context: ServiceContext):
    if context.database is None:
        raise ConfigError("No database configured", key="DATABASE_URL")
    return context.database


async def import_prices(context: ServiceContext, records: Iterable[Any]) -> Dict[str, Any]:
    database = _require_database(context)
    valid = validate_import_records(records)
    if valid:
        async with database.session() as session:
            await PriceRepository(session).upsert_prices(valid)
    log.info(f"Imported {len(valid)} historical price records")
    return {"success": True, "imported": len(valid), "message": f"Successfully imported {len(valid)} records"}


@log_execution_time
async def save_daily_prices(context: ServiceContext) -> Dict[str, Any]:
    """
    Store today's bar for every traded stock. Skipped on non-trading days.
    """
    database = _require_database(context)
    if not context.clock.is_trading_day():
        log.info("Not a trading day, skipping price save")
        return {"success": True, "saved": 0, "message": "Not a trading day, skipped"}

    trade_date = context.clock.today()
    snapshot = await context.snapshot.get_raw_market_snapshot()
    records = [r for r in (daily_record(raw, trade_date) for raw in snapshot.raw_stocks) if r is not None]
    if not records:
        return {"success": True, "saved": 0, "date": trade_date.isoformat(), "message": "No valid records to save"}

    async with database.session() as session:
        await PriceRepository(session).upsert_prices(records)

    log.info(f"Saved {len(records)} stock prices for {trade_date}")
    return {
        "success": True,
        "saved": len(records),
        "date": trade_date.isoformat(),
        "message": f"Saved {len(records)} stock prices for {trade_date}",
    }


async def daily_prices_job(context: ServiceContext):
    """Scheduler entry point: orchestration only."""
    try:
        log.info("[Scheduler] Starting daily price capture")
        result = await save_daily_prices(context)
        log.info(f"[Scheduler] {result['message']}")
    except Exception as exc:
        log.exception(f"[Scheduler] Daily price capture failed | Error: {exc}")
        raise
