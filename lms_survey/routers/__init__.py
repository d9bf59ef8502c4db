"""API routers."""
from lms_survey.routers import data, health, survey

__all__ = [
    "data",
    "health",
    "survey",
]
