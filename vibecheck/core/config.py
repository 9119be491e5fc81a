"""
Configuration settings for VibeCheck.

This module provides configuration settings loaded from environment variables.
"""

import os
from pydantic_settings import BaseSettings
from pydantic import validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    # Project info
    PROJECT_NAME: str = "VibeCheck"
    VERSION: str = "0.1.0"
    DESCRIPTION: str = "Is it worse today? Weighted vibe reports and worseness index for AI models"

    # Database
    DATABASE_URL: str = "sqlite:///./data/vibecheck.db"

    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "data/logs"
    LOG_MAX_BYTES: int = 10_485_760  # 10MB
    LOG_BACKUP_COUNT: int = 5

    # Report store backend: "sql" (local database) or "tinybird"
    STORE_BACKEND: str = "sql"

    # Hosted analytics backend
    TB_HOST: str = "https://api.europe-west2.gcp.tinybird.co"
    TB_API_BASE: str = ""  # events endpoint, falls back to TB_HOST
    TB_TOKEN: str = ""
    TB_EVENTS_TOKEN: str = ""
    TB_TIMEOUT: int = 15  # seconds
    TB_SIGNALS_DATASOURCE: str = "ai_model_signals"
    TB_FEEDBACK_DATASOURCE: str = "ai_user_feedback"

    # Worseness index
    BASELINE_WINDOW_DAYS: int = 28
    INDEX_SCALE: float = 15.0
    TREND_THRESHOLD_PTS: float = 2.0
    DEFAULT_RANGE_DAYS: int = 30

    # CORS settings for the dashboard frontend
    CORS_ORIGINS: list = ["http://localhost:3000", "http://localhost:5173"]

    @validator("DATABASE_URL")
    def validate_database_url(cls, v: str) -> str:
        """Ensure database directory exists"""
        if v.startswith("sqlite:///") and ":memory:" not in v:
            db_path = v.replace("sqlite:///", "")
            db_dir = os.path.dirname(db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
        return v

    @validator("STORE_BACKEND")
    def validate_store_backend(cls, v: str) -> str:
        """Only the known store backends are accepted"""
        v = v.lower()
        if v not in ("sql", "tinybird"):
            raise ValueError("STORE_BACKEND must be 'sql' or 'tinybird'")
        return v

    @property
    def events_base_url(self) -> str:
        return self.TB_API_BASE or self.TB_HOST

    class Config:
        env_file = ".env"
        case_sensitive = True


# Create global settings instance
settings = Settings()
