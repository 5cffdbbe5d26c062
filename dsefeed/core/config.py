import copy
import os
from pathlib import Path

import yaml

from dsefeed.core.errors import ConfigError


DEFAULTS = {
    "dse": {
        "base_url": "https://www.dsebd.org",
        "market_page": "/latest_share_price_scroll_by_ltp.php",
        "directory_page": "/company_listing.php",
        "company_page": "/displayCompany.php",
        "news_page": "/news_archive.php",
    },
    "cache": {
        "snapshot_ttl_seconds": 60,
        "snapshot_max_stale_seconds": 900,
        "directory_ttl_seconds": 600,
        "directory_max_stale_seconds": 86400,
        "fundamentals_ttl_seconds": 300,
        "history_ttl_seconds": 300,
        "news_ttl_seconds": 900,
    },
    "fetcher": {
        "timeout_seconds": 15.0,
        "snapshot_retries": 0,
        "history_retries": 3,
        "base_delay_seconds": 1.0,
        "max_jitter_seconds": 0.5,
    },
    "market": {
        "timezone": "Asia/Dhaka",
        "open_minutes": 600,
        "close_minutes": 870,
        "trading_weekdays": [6, 0, 1, 2, 3],
    },
    "scheduler": {
        "daily_run_time": "14:45",
    },
    "logging": {
        "level": "INFO",
        "console": {"enabled": True, "colorize": True},
        "file": {"enabled": False},
        "error_file": {"enabled": False},
        "json": {"enabled": False},
    },
}

DEFAULT_PATH = Path("config") / "settings.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    _config = None

    @classmethod
    def load(cls, path=None):
        if cls._config is None:
            config_path = Path(path or os.getenv("DSEFEED_CONFIG") or DEFAULT_PATH)
            overrides = {}
            if config_path.exists():
                try:
                    with open(config_path, "r", encoding="utf-8") as f:
                        overrides = yaml.safe_load(f) or {}
                except yaml.YAMLError as exc:
                    raise ConfigError(f"Invalid settings file: {exc}", key=str(config_path)) from exc
                if not isinstance(overrides, dict):
                    raise ConfigError("Settings file must contain a mapping", key=str(config_path))
            cls._config = _deep_merge(DEFAULTS, overrides)
        return cls._config

    @classmethod
    def reset(cls):
        cls._config = None

    @classmethod
    def get(cls, *keys, default=None):
        cfg = cls.load()
        for key in keys:
            if not isinstance(cfg, dict):
                return default
            cfg = cfg.get(key)
        return cfg if cfg is not None else default
