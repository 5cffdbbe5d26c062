from datetime import date, datetime
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from dsefeed.core.models import DailyPrice
from dsefeed.db.models import HistoricalPrice
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

UPSERT_BATCH = 500
UPDATABLE = ("open", "high", "low", "close", "volume")


def _row_values(record: DailyPrice) -> dict:
    return {
        "symbol": record.symbol.upper(),
        "date": record.date,
        "open": record.open,
        "high": record.high,
        "low": record.low,
        "close": record.close,
        "volume": record.volume,
    }


class PriceRepository:
    """
    Reads and writes end-of-day bars.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_prices(self, records: Iterable[DailyPrice]) -> int:
        """
        Insert bars, overwriting any existing bar for the same (symbol, date).

        Returns the number of records written.
        """
        rows = [_row_values(r) for r in records]
        if not rows:
            return 0

        dialect = self.session.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            for start in range(0, len(rows), UPSERT_BATCH):
                stmt = insert(HistoricalPrice).values(rows[start:start + UPSERT_BATCH])
                stmt = stmt.on_conflict_do_update(
                    index_elements=["symbol", "date"],
                    set_={**{col: getattr(stmt.excluded, col) for col in UPDATABLE}, "updated_at": datetime.utcnow()},
                )
                await self.session.execute(stmt)
        else:
            for row in rows:
                await self._merge_row(row)

        await self.session.flush()
        log.info(f"Upserted {len(rows)} daily price rows")
        return len(rows)

    async def _merge_row(self, row: dict):
        stmt = select(HistoricalPrice).where(
            HistoricalPrice.symbol == row["symbol"],
            HistoricalPrice.date == row["date"],
        )
        existing = (await self.session.execute(stmt)).scalar_one_or_none()
        if existing is None:
            self.session.add(HistoricalPrice(**row))
            return
        for key, value in row.items():
            setattr(existing, key, value)

    async def get_prices(self, symbol: str, start: date, end: date) -> List[DailyPrice]:
        """Bars for ``symbol`` with ``start <= date <= end``, oldest first."""
        stmt = (
            select(HistoricalPrice)
            .where(
                HistoricalPrice.symbol == symbol.upper(),
                HistoricalPrice.date >= start,
                HistoricalPrice.date <= end,
            )
            .order_by(HistoricalPrice.date)
        )
        result = await self.session.execute(stmt)
        return [_to_daily_price(row) for row in result.scalars().all()]


def _to_daily_price(row: HistoricalPrice) -> DailyPrice:
    return DailyPrice(
        symbol=row.symbol,
        date=row.date,
        open=float(row.open),
        high=float(row.high),
        low=float(row.low),
        close=float(row.close),
        volume=int(row.volume or 0),
    )

