"""Application configuration management."""
from pydantic import model_validator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./lms_survey.db"

STORAGE_BACKENDS = {"file", "database"}
REFRESH_MODES = {"eager", "manual"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = "development"
    project_name: str = "LMS Research Survey"
    port: int = 3000
    allowed_origins: str = "*"  # Comma-separated list of CORS origins

    # Storage
    storage_backend: str = "file"  # Options: "file" or "database"
    data_dir: str = "data"
    students_file: str = "student-results.json"
    professors_file: str = "professor-results.json"
    analysis_file: str = "combined-analysis.json"
    database_url: str = SQLITE_LOCAL_URL

    # Analysis
    analysis_refresh_mode: str = "eager"  # Options: "eager" (after every append) or "manual"

    # Submissions
    completion_time_fallback_min: int = 5
    completion_time_fallback_max: int = 15

    # Export
    export_filename: str = "lms-research-data.json"

    # Logging
    log_dir: str = "logs"

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def strip_directory(cls, value):
        """Trim whitespace around directory paths from environment variables."""
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        origins = [item.strip() for item in self.allowed_origins.split(",") if item.strip()]
        return origins or ["*"]

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate storage, refresh and fallback settings."""
        logger = logging.getLogger(__name__)

        self.storage_backend = self.storage_backend.strip().lower()
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unsupported storage backend: {self.storage_backend}. Use one of {sorted(STORAGE_BACKENDS)}."
            )

        self.analysis_refresh_mode = self.analysis_refresh_mode.strip().lower()
        if self.analysis_refresh_mode not in REFRESH_MODES:
            raise ValueError(
                f"Unsupported analysis refresh mode: {self.analysis_refresh_mode}. Use one of {sorted(REFRESH_MODES)}."
            )

        if self.completion_time_fallback_min < 1:
            raise ValueError("completion_time_fallback_min must be at least 1")

        if self.completion_time_fallback_max < self.completion_time_fallback_min:
            raise ValueError("completion_time_fallback_max must not be lower than completion_time_fallback_min")

        if not self.database_url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
