"""Tests for application settings validation."""
import pytest
from pydantic import ValidationError

from lms_survey.config import Settings, SQLITE_LOCAL_URL


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.storage_backend == "file"
    assert settings.analysis_refresh_mode == "eager"
    assert settings.students_file == "student-results.json"
    assert settings.export_filename == "lms-research-data.json"


def test_backend_and_mode_are_normalized():
    settings = Settings(storage_backend=" Database ", analysis_refresh_mode="MANUAL")

    assert settings.storage_backend == "database"
    assert settings.analysis_refresh_mode == "manual"


@pytest.mark.parametrize(
    "overrides",
    [
        {"storage_backend": "s3"},
        {"analysis_refresh_mode": "hourly"},
        {"completion_time_fallback_min": 0},
        {"completion_time_fallback_min": 10, "completion_time_fallback_max": 5},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_empty_database_url_falls_back_to_sqlite():
    assert Settings(database_url="").database_url == SQLITE_LOCAL_URL


def test_cors_origins_parsing():
    assert Settings(allowed_origins="https://a.example, https://b.example ,").cors_origins == [
        "https://a.example",
        "https://b.example",
    ]
    assert Settings(allowed_origins=" ").cors_origins == ["*"]
