"""FastAPI dependencies."""
import logging
from typing import Any

from fastapi import Request

from lms_survey.services.survey_service import SurveyService

logger = logging.getLogger(__name__)


def get_survey_service(request: Request) -> SurveyService:
    """Survey service created during application startup."""
    return request.app.state.survey_service


async def get_submission_payload(request: Request) -> Any:
    """Raw JSON body of a submission; a missing or malformed body counts as empty."""
    try:
        return await request.json()
    except ValueError as e:
        logger.warning(f"Unreadable submission body on {request.url.path}, treating as empty: {e}")
        return {}


def get_client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
