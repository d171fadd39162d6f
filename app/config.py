from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    BOT_TOKEN: str
    CALENDAR_URL: str
    TZ: str = "Europe/Paris"
    CALENDAR_CACHE_TTL_SECONDS: int = 600
    CALENDAR_FETCH_TIMEOUT_SECONDS: float = 10.0
    # Chat receiving the daily timetable; no announcement when unset.
    ANNOUNCE_CHAT_ID: Optional[int] = None
    ANNOUNCE_TIME: str = "07:00"
    TELEGRAM_PROXY: Optional[str] = None

    @field_validator("ANNOUNCE_TIME")
    @classmethod
    def validate_hhmm(cls, value: str, info):
        try:
            datetime.strptime(value, "%H:%M")
        except ValueError as exc:
            raise ValueError(f"{info.field_name} must be HH:MM") from exc
        return value

    @field_validator("TZ")
    @classmethod
    def validate_timezone(cls, value: str):
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"TZ must be a valid IANA timezone, got '{value}'") from exc
        return value

    @field_validator("CALENDAR_CACHE_TTL_SECONDS", "CALENDAR_FETCH_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive(cls, value, info):
        if value <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return value

    class Config:
        env_file = BASE_DIR / ".env"
        env_file_encoding = "utf-8"


settings = Settings()
