"""Database models."""
from lms_survey.models.survey_blob import SurveyBlob

__all__ = ["SurveyBlob"]
