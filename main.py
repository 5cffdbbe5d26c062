#!/usr/bin/env python3
"""
DSE Market Feed - Main Entry Point
==================================

Usage:
    python main.py --mode api                                  # Run API server
    python main.py --mode snapshot                             # Print the live market snapshot
    python main.py --mode fundamentals --symbol GP             # Print one company's fundamentals
    python main.py --mode history --symbol GP --timeframe 3M   # Print a price series
    python main.py --mode scheduler                            # Run the daily price capture
"""

import argparse
import asyncio
import json
import os
import sys

from dotenv import load_dotenv

from dsefeed.utils.logger import get_logger, setup_logging

MODES = ("api", "snapshot", "fundamentals", "history", "scheduler")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dhaka Stock Exchange market feed")
    parser.add_argument("--mode", choices=MODES, default="api", help="What to run (default: api)")
    parser.add_argument("--symbol", help="Trading code for fundamentals/history modes")
    parser.add_argument("--timeframe", default="1M", help="History timeframe: 1D, 1W, 1M, 3M, 6M, 1Y, 10Y, MAX")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    return parser.parse_args(argv)


def _print(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def run_snapshot() -> None:
    from dsefeed.core.context import ServiceContext

    context = ServiceContext.build()
    try:
        market_open = context.clock.is_open()
        stocks = await context.snapshot.get_stocks(market_open)
        _print({"marketOpen": market_open, "count": len(stocks), "data": [s.to_dict() for s in stocks]})
    finally:
        await context.close()


async def run_fundamentals(symbol: str) -> None:
    from dsefeed.core.context import ServiceContext

    context = ServiceContext.build()
    try:
        fundamentals = await context.fundamentals.fetch_stock_fundamentals(symbol)
        _print(fundamentals.to_dict())
    finally:
        await context.close()


async def run_history(symbol: str, timeframe_value: str) -> None:
    from dsefeed.core.context import ServiceContext
    from dsefeed.core.errors import NotFoundError
    from dsefeed.core.timeframe import Timeframe

    timeframe = Timeframe.parse(timeframe_value)
    context = ServiceContext.build()
    try:
        stock = await context.snapshot.find_stock(symbol, context.clock.is_open())
        if stock is None:
            raise NotFoundError(f"Stock not found: {symbol.upper()}", symbol=symbol)
        series = await context.history.fetch_historical_data(
            symbol, timeframe, stock.ltp, stock.high, stock.low, stock.volume
        )
        _print({"symbol": symbol.upper(), "timeframe": timeframe.value, "source": series.source, "data": series.to_list()})
    finally:
        await context.close()


async def run_scheduler() -> None:
    from dsefeed.api.settings import get_api_settings
    from dsefeed.core.context import ServiceContext
    from dsefeed.db.manager import DatabaseManager
    from dsefeed.scheduler.scheduler import build_scheduler

    settings = get_api_settings()
    if not settings.database_configured:
        raise SystemExit("DATABASE_URL is required for scheduler mode")

    database = DatabaseManager(settings.database_url)
    await database.create_all()
    context = ServiceContext.build(database=database)
    scheduler = build_scheduler(context)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await context.close()


def run_api(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("dsefeed.api.app:app", host=host, port=port)


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    setup_logging()
    log = get_logger("main")

    if args.mode in ("fundamentals", "history") and not args.symbol:
        log.error(f"--symbol is required for --mode {args.mode}")
        return 2

    log.info(f"Starting in {args.mode} mode")
    if args.mode == "api":
        run_api(args.host, args.port)
    elif args.mode == "snapshot":
        asyncio.run(run_snapshot())
    elif args.mode == "fundamentals":
        asyncio.run(run_fundamentals(args.symbol))
    elif args.mode == "history":
        asyncio.run(run_history(args.symbol, args.timeframe))
    elif args.mode == "scheduler":
        try:
            asyncio.run(run_scheduler())
        except KeyboardInterrupt:
            log.info("Scheduler stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
