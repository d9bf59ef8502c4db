"""Services module."""
from lms_survey.services.normalizer import SurveyNormalizer, RecordIdGenerator
from lms_survey.services.record_store import (
    RecordStore,
    JsonFileRecordStore,
    DatabaseRecordStore,
    StorageError,
    build_record_store,
)
from lms_survey.services.survey_service import (
    SurveyService,
    SubmissionResult,
    EagerRefreshPolicy,
    ManualRefreshPolicy,
    build_refresh_policy,
)

__all__ = [
    "SurveyNormalizer",
    "RecordIdGenerator",
    "RecordStore",
    "JsonFileRecordStore",
    "DatabaseRecordStore",
    "StorageError",
    "build_record_store",
    "SurveyService",
    "SubmissionResult",
    "EagerRefreshPolicy",
    "ManualRefreshPolicy",
    "build_refresh_policy",
]
