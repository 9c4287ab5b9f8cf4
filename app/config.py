# app/config.py

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Attendance Recon API"
    app_env: str = "development"
    debug: bool = True
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Supabase (record store) - left empty to run local-only
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Local storage
    data_dir: str = "data"
    default_user_name: str = "未設定"

    # CSV parsing
    legacy_encoding: str = "cp932"  # Shift_JIS family
    header_scan_lines: int = 10
    timezone: str = "Asia/Tokyo"

    # Matching config
    time_tolerance_minutes: float = 5
    leave_tolerance_days: float = 0.1

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
