from __future__ import annotations

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "classpoints"
    APP_VERSION: str = "1.0.0"
    DATABASE_URL: str = "sqlite+aiosqlite:///classpoints.db"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Calendar days (streaks, "today") are computed in this zone.
    TIMEZONE: str = "UTC"
    WINDOW_MODE: str = Field(default="rolling", pattern="^(rolling|calendar)$")
    WEEK_WINDOW_DAYS: int = Field(default=7, ge=1)
    MONTH_WINDOW_DAYS: int = Field(default=30, ge=1)
    STREAK_MILESTONES: tuple[int, int, int] = (3, 7, 30)

    # Derived views held in memory are dropped on change, or after this many seconds.
    SNAPSHOT_TTL_SECONDS: int = Field(default=60, ge=0)

    NOTIFICATIONS_ENABLED: bool = True


settings = Settings()
