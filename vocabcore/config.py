"""
Centralized configuration management for vocabcore.
"""
from datetime import timedelta
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_EASY_INTERVAL,
    DEFAULT_HARD_INTERVAL,
    DEFAULT_MAX_WRITE_ATTEMPTS,
    DEFAULT_MEDIUM_INTERVAL,
    DEFAULT_MISMATCH_DELAY,
    DEFAULT_NEW_INTERLEAVE,
    DEFAULT_PAIRS_PER_GAME,
    DEFAULT_SESSION_LIMIT,
)


def get_default_db_path() -> Path:
    """Returns the default path for the database file."""
    return Path.home() / ".vocabcore" / "vocab.db"


class Settings(BaseSettings):
    """
    Application settings, loaded from VOCABCORE_* environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="VOCABCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Storage ---
    db_path: Path = get_default_db_path()

    # --- Sessions ---
    session_limit: int = DEFAULT_SESSION_LIMIT
    pairs_per_game: int = DEFAULT_PAIRS_PER_GAME
    mismatch_delay_ms: int = int(
        DEFAULT_MISMATCH_DELAY.total_seconds() * 1000
    )
    new_interleave: int = DEFAULT_NEW_INTERLEAVE
    max_write_attempts: int = DEFAULT_MAX_WRITE_ATTEMPTS

    # --- Scheduler intervals ---
    hard_interval_minutes: int = int(
        DEFAULT_HARD_INTERVAL.total_seconds() // 60
    )
    medium_interval_days: int = DEFAULT_MEDIUM_INTERVAL.days
    easy_interval_days: int = DEFAULT_EASY_INTERVAL.days

    # --- Logging ---
    log_level: str = "WARNING"

    @property
    def mismatch_delay(self) -> timedelta:
        return timedelta(milliseconds=self.mismatch_delay_ms)


settings = Settings()
