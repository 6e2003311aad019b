from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    session_storage_path: str
    request_timeout_seconds: float
    token_refresh_margin_seconds: int
    profile_fetch_max_retries: int
    profile_fetch_retry_backoff_ms: int
    profile_image_bucket: str
    notification_history_size: int
    log_level: str


def get_settings() -> Settings:
    return Settings(
        supabase_url=_env("SUPABASE_URL", ""),
        supabase_anon_key=_env("SUPABASE_ANON_KEY", ""),
        session_storage_path=_env("SESSION_STORAGE_PATH", ""),
        request_timeout_seconds=float(_env("REQUEST_TIMEOUT_SECONDS", "10")),
        token_refresh_margin_seconds=int(_env("TOKEN_REFRESH_MARGIN_SECONDS", "60")),
        profile_fetch_max_retries=int(_env("PROFILE_FETCH_MAX_RETRIES", "0")),
        profile_fetch_retry_backoff_ms=int(_env("PROFILE_FETCH_RETRY_BACKOFF_MS", "250")),
        profile_image_bucket=_env("PROFILE_IMAGE_BUCKET", "profile-images"),
        notification_history_size=int(_env("NOTIFICATION_HISTORY_SIZE", "50")),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
