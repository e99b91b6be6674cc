# datefunnel/config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "dev"
    APP_NAME: str = "Datefunnel Trip Scheduling"

    # DB URL – SQLite local by default
    DATABASE_URL: str = "sqlite:///./datefunnel.db"

    LOG_LEVEL: str = "INFO"

    # Scheduling policy. These are product constants, not laws.
    SMALL_GROUP_MAX_TRAVELERS: int = 10
    LARGE_GROUP_MIN_SUPPORT: int = 5  # floor of supporters for groups above the small-group size
    DEFAULT_TRIP_DURATION_DAYS: int = 3
    CONSENSUS_MAX_WINDOWS: int = 3
    MAX_WINDOW_DAYS: int = 14
    MAX_WINDOWS_PER_USER: int = 2
    WINDOW_SIMILARITY_THRESHOLD: float = 0.6
    DATE_ADJUSTMENT_DAYS: int = 7

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

_settings: Optional[Settings] = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
