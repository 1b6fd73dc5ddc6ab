from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="HEC_", extra="ignore"
    )

    # Remote document store; leaving the base URL unset runs the tracker offline
    remote_base_url: Optional[str] = None
    remote_collection: str = "projects"
    remote_api_key: Optional[str] = None
    remote_timeout_seconds: float = 15.0
    remote_retry_attempts: int = 3
    remote_retry_min_wait: float = 1.0

    cache_path: str = "./data/hec-cache.db"
    cache_key: str = "hec-projects"

    deadline_warning_days: int = 7
    status_policy: Literal["by-date", "by-stored-status"] = "by-date"
    notice_history: int = 50

    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"
    log_level: str = "info"
    log_json: bool = False

    @property
    def resolved_cache_path(self) -> Path:
        path = Path(self.cache_path)
        if path.is_absolute():
            return path
        return Path(__file__).resolve().parents[2] / path

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_base_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
