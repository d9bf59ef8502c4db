"""Pydantic schemas for survey endpoints."""
from __future__ import annotations

from lms_survey.schemas.base import BaseSchema


class SurveySubmissionResponse(BaseSchema):
    """Response returned after a survey submission is stored."""

    success: bool
    message: str
    id: int
    display_name: str
    anonymous: bool


class ErrorResponse(BaseSchema):
    """Failure envelope for submissions."""

    success: bool = False
    message: str


class AnonymityCounts(BaseSchema):
    total: int
    anonymous: int
    named: int


class OverallAnonymity(AnonymityCounts):
    anonymous_percentage: int


class AnonymousStatsResponse(BaseSchema):
    """Anonymous participation per role and overall."""

    students: AnonymityCounts
    professors: AnonymityCounts
    overall: OverallAnonymity
    timestamp: str


class StorageStatus(BaseSchema):
    backend: str
    students: bool
    professors: bool
    analysis: bool


class HealthResponse(BaseSchema):
    """Liveness and presence of the persisted blobs."""

    status: str
    timestamp: str
    version: str
    analysis_refresh_mode: str
    storage: StorageStatus
