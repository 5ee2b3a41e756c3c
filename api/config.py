"""
Runtime settings for the intake API.

Values come from the environment (a `.env` file at the project root is loaded
first). Supabase credentials are read separately by `repositories/client.py`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {value!r}") from None
    if parsed <= 0:
        raise RuntimeError(f"Environment variable {name} must be > 0, got {parsed}")
    return parsed


@dataclass(frozen=True, slots=True)
class Settings:
    storage_bucket: str = "interventia-intake"
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 5
    max_upload_bytes: int = 10 * 1024 * 1024
    signed_url_ttl_seconds: int = 3600
    operator_api_key: Optional[str] = None  # unset disables the operator endpoints
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            storage_bucket=os.getenv("INTAKE_STORAGE_BUCKET") or "interventia-intake",
            rate_limit_window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", 60),
            rate_limit_max_requests=_int_env("RATE_LIMIT_MAX_REQUESTS", 5),
            max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
            signed_url_ttl_seconds=_int_env("SIGNED_URL_TTL_SECONDS", 3600),
            operator_api_key=os.getenv("OPERATOR_API_KEY") or None,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Install a root handler at the configured level (no-op if one exists)."""

    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
