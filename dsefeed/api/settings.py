"""Runtime settings for the market feed API layer."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

DEFAULT_RATE_LIMIT = "120/minute"


class ApiSettings:
    """Container for runtime-tunable API settings."""

    def __init__(self) -> None:
        self.admin_api_key: str | None = os.getenv("ADMIN_API_KEY") or None
        self.database_url: str | None = os.getenv("DATABASE_URL") or None
        self.cors_origins: List[str] = self._env_list("CORS_ORIGINS") or ["*"]
        self.rate_limit: str = os.getenv("API_RATE_LIMIT", DEFAULT_RATE_LIMIT)
        self.scheduler_enabled: bool = os.getenv("SCHEDULER_ENABLED", "false").lower() == "true"

    @property
    def admin_key_configured(self) -> bool:
        return bool(self.admin_api_key)

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url)

    @staticmethod
    def _env_list(var_name: str) -> List[str]:
        raw = os.getenv(var_name)
        if not raw:
            return []
        # Accept comma or newline separated lists
        parts = [item.strip() for item in raw.replace("\n", ",").split(",")]
        return [item for item in parts if item]


@lru_cache(maxsize=1)
def get_api_settings() -> ApiSettings:
    """Return cached API settings instance."""

    load_dotenv()
    return ApiSettings()


__all__ = ["ApiSettings", "get_api_settings"]
