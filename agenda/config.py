"""
Configuration for the agenda booking API.
Loads environment variables and provides typed settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./agenda.db"
    sql_echo: bool = False  # set to True to see SQL

    # Auth
    secret_key: str = "change-me-later"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Scheduling
    default_timezone: str = "America/Sao_Paulo"
    default_appointment_minutes: int = 30
    slot_step_minutes: Optional[int] = None  # None => step equals the requested duration
    booking_horizon_days: int = 365
    no_show_blocks_slot: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None  # relative to log_dir; unset => console only
    log_dir: str = "logs"
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
