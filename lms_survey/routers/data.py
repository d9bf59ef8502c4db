"""Read-only data, analysis, statistics and export endpoints."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response

from lms_survey.config import get_settings
from lms_survey.dependencies import get_survey_service
from lms_survey.schemas.survey import AnonymousStatsResponse
from lms_survey.services.record_store import StorageError
from lms_survey.services.survey_service import SurveyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _storage_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message},
    )


@router.get("/data/all")
async def get_all_data(service: SurveyService = Depends(get_survey_service)):
    """Every stored student and professor record with totals."""
    try:
        return await service.get_all_data()
    except StorageError as e:
        logger.error(f"Error reading survey data: {e}")
        return _storage_error("خطأ في قراءة البيانات")


@router.get("/analysis")
async def get_analysis(service: SurveyService = Depends(get_survey_service)):
    """Last computed analysis document."""
    try:
        return await service.get_analysis()
    except StorageError as e:
        logger.error(f"Error reading analysis: {e}")
        return _storage_error("خطأ في قراءة التحليلات")


@router.post("/analysis/refresh")
async def refresh_analysis(service: SurveyService = Depends(get_survey_service)):
    """Recompute the analysis document from the stored collections."""
    try:
        return await service.refresh_analysis()
    except StorageError as e:
        logger.error(f"Error refreshing analysis: {e}")
        return _storage_error("خطأ في تحديث التحليلات")


@router.get("/stats/anonymous", response_model=AnonymousStatsResponse)
async def get_anonymous_stats(service: SurveyService = Depends(get_survey_service)):
    """Named versus anonymous participation counts."""
    try:
        return await service.get_anonymous_stats()
    except StorageError as e:
        logger.error(f"Error computing anonymous stats: {e}")
        return _storage_error("خطأ في حساب الإحصائيات")


@router.get("/export/json")
async def export_json(service: SurveyService = Depends(get_survey_service)):
    """Downloadable JSON bundle with anonymous names and audit fields scrubbed."""
    try:
        bundle = await service.build_export()
    except StorageError as e:
        logger.error(f"Error exporting survey data: {e}")
        return _storage_error("خطأ في التصدير")

    settings = get_settings()
    return Response(
        content=json.dumps(bundle, ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{settings.export_filename}"'},
    )
