"""
DSE Market Feed - Logging Utility
=================================

Loguru based logging setup with:
- Console logging
- Rotating file and error-file sinks
- Optional JSON sink for log aggregation
- Timing decorator for sync and async callables
"""

import asyncio
import sys
import time
from functools import wraps
from pathlib import Path
from typing import Optional

from loguru import logger

from dsefeed.core.config import Config


DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


class LoggerSetup:
    """Configure and manage application logging"""

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: ``logging`` section of the settings file. Read from
                :class:`Config` when omitted.
        """
        self.config = config if config is not None else (Config.get("logging", default={}) or {})
        self._setup_logger()

    def _setup_logger(self):
        logger.remove()
        logger.configure(extra={"name": "dsefeed"})

        log_level = self.config.get("level", "INFO")
        log_format = self.config.get("format") or DEFAULT_FORMAT

        console_config = self.config.get("console", {})
        if console_config.get("enabled", True):
            logger.add(
                sys.stderr,
                format=log_format,
                level=log_level,
                colorize=console_config.get("colorize", True),
                backtrace=True,
                diagnose=False,
            )

        file_config = self.config.get("file", {})
        if file_config.get("enabled", False):
            log_path = Path(file_config.get("path", "./logs/dsefeed.log"))
            log_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                log_path,
                format=log_format,
                level=log_level,
                rotation=file_config.get("rotation", "100 MB"),
                retention=file_config.get("retention", "14 days"),
                compression=file_config.get("compression", "zip"),
                backtrace=True,
                diagnose=False,
            )

        error_config = self.config.get("error_file", {})
        if error_config.get("enabled", False):
            error_path = Path(error_config.get("path", "./logs/errors.log"))
            error_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                error_path,
                format=log_format,
                level=error_config.get("level", "ERROR"),
                rotation=error_config.get("rotation", "50 MB"),
                retention=error_config.get("retention", "30 days"),
                backtrace=True,
                diagnose=False,
            )

        json_config = self.config.get("json", {})
        if json_config.get("enabled", False):
            json_path = Path(json_config.get("path", "./logs/dsefeed.json"))
            json_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                json_path,
                format="{message}",
                level=log_level,
                serialize=True,
                rotation=file_config.get("rotation", "100 MB"),
                retention=file_config.get("retention", "14 days"),
            )

    def get_logger(self, name: Optional[str] = None):
        if name:
            return logger.bind(name=name)
        return logger


_logger_setup = None


def setup_logging(config: Optional[dict] = None):
    """
    Initialize logging system

    Args:
        config: Optional ``logging`` config dict overriding the settings file
    """
    global _logger_setup
    _logger_setup = LoggerSetup(config)
    logger.bind(name=__name__).debug("Logging system initialized")


def get_logger(name: Optional[str] = None):
    """
    Get a logger instance bound to ``name``

    Example:
        >>> from dsefeed.utils.logger import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("Fetching market snapshot")
    """
    global _logger_setup
    if _logger_setup is None:
        setup_logging()
    return _logger_setup.get_logger(name)


def log_execution_time(func):
    """
    Decorator to log execution time of a function or coroutine function

    Example:
        >>> @log_execution_time
        >>> async def save_daily_prices(...):
        >>>     ...
    """

    if asyncio.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            log = get_logger(func.__module__)
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                log.error(f"{func.__name__} failed after {time.perf_counter() - start_time:.2f}s: {e}")
                raise
            log.info(f"{func.__name__} executed in {time.perf_counter() - start_time:.2f}s")
            return result

        return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
        log = get_logger(func.__module__)
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            log.error(f"{func.__name__} failed after {time.perf_counter() - start_time:.2f}s: {e}")
            raise
        log.info(f"{func.__name__} executed in {time.perf_counter() - start_time:.2f}s")
        return result

    return wrapper
