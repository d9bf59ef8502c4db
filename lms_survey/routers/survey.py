"""Router handling student and professor survey submissions."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from lms_survey.data.survey_fields import SUBMISSION_MESSAGES, SurveyRole
from lms_survey.dependencies import get_client_ip, get_submission_payload, get_survey_service
from lms_survey.schemas.survey import ErrorResponse, SurveySubmissionResponse
from lms_survey.services.record_store import StorageError
from lms_survey.services.survey_service import SurveyService

logger = logging.getLogger(__name__)

SAVE_ERROR_MESSAGE = "خطأ في حفظ البيانات"

router = APIRouter(prefix="/api/survey")


async def _submit(
    role: SurveyRole,
    payload: Any,
    client_ip: str | None,
    service: SurveyService,
) -> SurveySubmissionResponse | JSONResponse:
    try:
        result = await service.submit(role, payload, client_ip=client_ip)
    except StorageError as e:
        logger.error(f"Error saving {role.value} survey: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(message=SAVE_ERROR_MESSAGE).model_dump(by_alias=True),
        )

    return SurveySubmissionResponse(
        success=True,
        message=SUBMISSION_MESSAGES[role],
        id=result.record_id,
        display_name=result.display_name,
        anonymous=result.anonymous,
    )


@router.post("/student", response_model=SurveySubmissionResponse)
async def submit_student_survey(
    payload: Any = Depends(get_submission_payload),
    client_ip: str | None = Depends(get_client_ip),
    service: SurveyService = Depends(get_survey_service),
):
    """Persist a student questionnaire and refresh the analysis."""
    return await _submit(SurveyRole.STUDENT, payload, client_ip, service)


@router.post("/professor", response_model=SurveySubmissionResponse)
async def submit_professor_survey(
    payload: Any = Depends(get_submission_payload),
    client_ip: str | None = Depends(get_client_ip),
    service: SurveyService = Depends(get_survey_service),
):
    """Persist a professor questionnaire and refresh the analysis."""
    return await _submit(SurveyRole.PROFESSOR, payload, client_ip, service)
