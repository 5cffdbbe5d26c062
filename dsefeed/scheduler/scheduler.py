from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from dsefeed.core.config import Config
from dsefeed.core.context import ServiceContext
from dsefeed.scheduler.jobs import daily_prices_job
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

TRADING_DAYS = "sun,mon,tue,wed,thu"
JOB_ID = "save_daily_prices"


def parse_run_time(value: str):
    try:
        hour_str, minute_str = value.split(":")
        hour, minute = int(hour_str), int(minute_str)
    except ValueError as exc:
        raise ValueError(f"Invalid daily_run_time format: {value}") from exc
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid daily_run_time format: {value}")
    return hour, minute


def build_scheduler(context: ServiceContext) -> AsyncIOScheduler:
    """Daily end-of-day capture after the close, on exchange trading days."""
    timezone = Config.get("market", "timezone", default="Asia/Dhaka")
    daily_run_time = Config.get("scheduler", "daily_run_time", default="14:45")
    hour, minute = parse_run_time(daily_run_time)

    scheduler = AsyncIOScheduler(timezone=timezone)
    scheduler.add_job(
        daily_prices_job,
        trigger=CronTrigger(day_of_week=TRADING_DAYS, hour=hour, minute=minute, timezone=timezone),
        args=[context],
        id=JOB_ID,
        max_instances=1,
        misfire_grace_time=300,
        coalesce=True,
    )
    log.info(f"Daily price capture scheduled {TRADING_DAYS} at {daily_run_time} {timezone}")
    return scheduler
