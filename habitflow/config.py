"""Application configuration."""

import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Remote habit API
    api_url: str = os.getenv("HABITFLOW_API_URL", "http://localhost:5071")
    api_token: str = os.getenv("HABITFLOW_API_TOKEN", "")
    sync_timeout_seconds: float = float(os.getenv("SYNC_TIMEOUT_SECONDS", "30"))
    refresh_after_sync: bool = os.getenv("REFRESH_AFTER_SYNC", "true").lower() in (
        "1",
        "true",
        "yes",
    )

    # Local ledger
    ledger_path: str = os.getenv("LEDGER_PATH", "data/ledger.db")

    # Statistics
    streak_lookback_days: int = int(os.getenv("STREAK_LOOKBACK_DAYS", "365"))

    # Calendar images
    calendar_output_dir: str = os.getenv("CALENDAR_OUTPUT_DIR", "static/calendars")

    # Local query API
    server_host: str = os.getenv("SERVER_HOST", "127.0.0.1")
    server_port: int = int(os.getenv("SERVER_PORT", "8000"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
