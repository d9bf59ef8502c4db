"""Pytest configuration and fixtures."""
import os
import random
import tempfile
from datetime import datetime, UTC

import pytest
from httpx import AsyncClient, ASGITransport

# Keep test runs from writing logs or data into the working tree
_TEST_ROOT = tempfile.mkdtemp(prefix="lms_survey_tests_")
os.environ["LOG_DIR"] = os.path.join(_TEST_ROOT, "logs")
os.environ["DATA_DIR"] = os.path.join(_TEST_ROOT, "data")
os.environ["STORAGE_BACKEND"] = "file"
os.environ["ANALYSIS_REFRESH_MODE"] = "eager"

from lms_survey.data.survey_fields import (
    ANALYSIS_DOCUMENT,
    PROFESSORS_COLLECTION,
    STUDENTS_COLLECTION,
)
from lms_survey.services.normalizer import SurveyNormalizer
from lms_survey.services.record_store import JsonFileRecordStore
from lms_survey.services.survey_service import SurveyService

FILE_NAMES = {
    STUDENTS_COLLECTION: "student-results.json",
    PROFESSORS_COLLECTION: "professor-results.json",
    ANALYSIS_DOCUMENT: "combined-analysis.json",
}

FIXED_NOW = datetime(2025, 3, 1, 9, 30, 0, tzinfo=UTC)


@pytest.fixture
def record_store(tmp_path):
    """JSON file store rooted in a per-test directory."""
    return JsonFileRecordStore(tmp_path / "data", FILE_NAMES)


@pytest.fixture
def normalizer():
    """Normalizer with a seeded random source and a fixed clock."""
    return SurveyNormalizer(rng=random.Random(2025), now=lambda: FIXED_NOW)


@pytest.fixture
async def survey_service(record_store, normalizer):
    """Initialized survey service over empty collections."""
    service = SurveyService(record_store, normalizer=normalizer, now=lambda: FIXED_NOW)
    await service.initialize()
    await service.refresh_analysis()
    return service


@pytest.fixture
async def test_app(survey_service):
    """Application with the survey service dependency pointed at the test store."""
    from lms_survey.main import app
    from lms_survey.dependencies import get_survey_service

    app.dependency_overrides[get_survey_service] = lambda: survey_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as http_client:
        yield http_client
