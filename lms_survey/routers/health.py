"""Health check endpoint."""
from fastapi import APIRouter, Depends
import logging

from lms_survey.dependencies import get_survey_service
from lms_survey.schemas.survey import HealthResponse
from lms_survey.services.survey_service import SurveyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthResponse)
async def health_check(service: SurveyService = Depends(get_survey_service)):
    """Health check endpoint for monitoring."""
    health = await service.health()
    if health["status"] != "ok":
        logger.warning(f"Health check degraded: {health['storage']}")
    return health
