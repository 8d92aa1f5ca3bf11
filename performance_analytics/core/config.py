import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()

class AnalyticsSettings(BaseModel):
    summary_window_days: int = Field(default=int(os.getenv("SUMMARY_WINDOW_DAYS", "30")))
    summary_top_teams: int = Field(default=int(os.getenv("SUMMARY_TOP_TEAMS", "10")))
    summary_trend_months: int = Field(default=int(os.getenv("SUMMARY_TREND_MONTHS", "7")))
    default_export_format: str = Field(default=os.getenv("DEFAULT_EXPORT_FORMAT", "csv"))

class Config(BaseModel):
    app_name: str = "Performance Analytics"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # Caller identity is authenticated upstream and forwarded in this header
    caller_id_header: str = os.getenv("CALLER_ID_HEADER", "X-User-Id")

    # Analytics
    analytics: AnalyticsSettings = AnalyticsSettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment == "production" and settings.database_url.startswith("sqlite"):
    _logger.warning("Running production analytics against a SQLite database.")
