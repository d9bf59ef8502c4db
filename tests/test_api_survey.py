"""API tests for survey submission, data, analysis, export and health endpoints."""
from __future__ import annotations

import json
import re

import pytest
from fastapi import FastAPI, status

from lms_survey.data.survey_fields import (
    ANONYMOUS_EXPORT_NAME,
    DISPLAY_NAME_PREFIXES,
    INSUFFICIENT_DATA_INSIGHT,
    SurveyRole,
)
from lms_survey.main import lifespan
from lms_survey.services.record_store import StorageError
from lms_survey.services.survey_service import SurveyService

STUDENT_NAME = re.compile(
    rf"^({'|'.join(re.escape(p) for p in DISPLAY_NAME_PREFIXES[SurveyRole.STUDENT])}) \d{{4}}$"
)


@pytest.mark.asyncio
async def test_anonymous_student_submission(client):
    """A student without a name gets a generated placeholder."""
    response = await client.post("/api/survey/student", json={"gender": "أنثى"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["anonymous"] is True
    assert body["message"] == "تم حفظ استبيان الطالب بنجاح"
    assert STUDENT_NAME.match(body["displayName"])

    data = (await client.get("/api/data/all")).json()
    stored = data["students"][0]
    assert stored["id"] == body["id"]
    assert STUDENT_NAME.match(stored["name"])
    assert stored["participationType"] == "anonymous"


@pytest.mark.asyncio
async def test_named_professor_submission(client):
    response = await client.post("/api/survey/professor", json={"name": "د. أحمد"})

    body = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert body["anonymous"] is False
    assert body["displayName"] == "د. أحمد"
    assert body["message"] == "تم حفظ استبيان الهيئة التدريسية بنجاح"


@pytest.mark.asyncio
async def test_satisfaction_histogram_after_submissions(client):
    for score in (5, 5, 3):
        await client.post("/api/survey/student", json={"overallSatisfaction": score})

    analysis = (await client.get("/api/analysis")).json()

    assert analysis["charts"]["satisfactionLevels"] == {
        "مرتفع جداً": 2,
        "مرتفع": 0,
        "متوسط": 1,
        "منخفض": 0,
        "منخفض جداً": 0,
    }
    assert analysis["summary"]["studentCount"] == 3
    assert analysis["summary"]["completionRate"] == 100


@pytest.mark.asyncio
async def test_export_scrubs_anonymous_names(client):
    anonymous = (await client.post("/api/survey/student", json={})).json()
    named = (await client.post("/api/survey/student", json={"name": "ليلى"})).json()

    response = await client.get("/api/export/json")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-disposition"] == 'attachment; filename="lms-research-data.json"'
    bundle = json.loads(response.content)
    names = {record["id"]: record["name"] for record in bundle["students"]}
    assert names[anonymous["id"]] == ANONYMOUS_EXPORT_NAME
    assert names[named["id"]] == "ليلى"
    assert all("originalName" not in record and "ip" not in record for record in bundle["students"])


@pytest.mark.asyncio
async def test_first_boot_analysis(client):
    response = await client.get("/api/analysis")

    analysis = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert analysis["summary"]["totalParticipants"] == 0
    assert analysis["summary"]["completionRate"] == 0
    assert analysis["insights"] == [INSUFFICIENT_DATA_INSIGHT]


@pytest.mark.asyncio
async def test_data_all_totals(client):
    await client.post("/api/survey/student", json={})
    await client.post("/api/survey/professor", json={})
    await client.post("/api/survey/professor", json={})

    data = (await client.get("/api/data/all")).json()

    assert data["totals"] == {"students": 1, "professors": 2, "total": 3}


@pytest.mark.asyncio
async def test_malformed_body_is_treated_as_empty(client):
    response = await client.post(
        "/api/survey/student",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["anonymous"] is True


@pytest.mark.asyncio
async def test_non_object_body_is_treated_as_empty(client):
    response = await client.post("/api/survey/professor", json=["a", "b"])

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["anonymous"] is True


@pytest.mark.asyncio
async def test_anonymous_stats_endpoint(client):
    await client.post("/api/survey/student", json={})
    await client.post("/api/survey/professor", json={"name": "د. سمير"})

    stats = (await client.get("/api/stats/anonymous")).json()

    assert stats["students"] == {"total": 1, "anonymous": 1, "named": 0}
    assert stats["professors"] == {"total": 1, "anonymous": 0, "named": 1}
    assert stats["overall"]["anonymousPercentage"] == 50


@pytest.mark.asyncio
async def test_refresh_endpoint_recomputes(client):
    response = await client.post("/api/analysis/refresh")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["summary"]["totalParticipants"] == 0


@pytest.mark.asyncio
async def test_health_endpoint(client):
    response = await client.get("/api/health")

    body = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert body["status"] == "ok"
    assert body["analysisRefreshMode"] == "eager"
    assert body["storage"] == {"backend": "file", "students": True, "professors": True, "analysis": True}


@pytest.mark.asyncio
async def test_storage_failure_returns_500(client, survey_service, monkeypatch):
    """A failed append is reported and the analysis is left alone."""
    before = (await client.get("/api/analysis")).json()

    async def failing_save(name, data):
        raise StorageError("read-only file system")

    monkeypatch.setattr(survey_service.store, "save", failing_save)

    response = await client.post("/api/survey/student", json={"name": "علي"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"success": False, "message": "خطأ في حفظ البيانات"}
    assert (await client.get("/api/analysis")).json() == before


@pytest.mark.asyncio
async def test_read_failure_returns_500(client, survey_service):
    survey_service.store.path_for("students").unlink()

    response = await client.get("/api/data/all")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "خطأ في قراءة البيانات"}


@pytest.mark.asyncio
async def test_root_endpoint(client):
    body = (await client.get("/")).json()

    assert body["docs"] == "/docs"
    assert body["message"] == "LMS Research Survey API"


@pytest.mark.asyncio
async def test_odd_numeric_input_keeps_analysis_current(client):
    """Digit symbols and non-finite numbers are stored without freezing the analysis."""
    first = await client.post(
        "/api/survey/student",
        content=b'{"overallSatisfaction": "\xc2\xb2", "completionTime": Infinity}',
        headers={"content-type": "application/json"},
    )
    second = await client.post("/api/survey/student", json={"overallSatisfaction": 4})

    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_200_OK

    analysis = await client.get("/api/analysis")
    assert analysis.status_code == status.HTTP_200_OK
    assert analysis.json()["summary"]["totalParticipants"] == 2
    assert analysis.json()["charts"]["satisfactionLevels"]["مرتفع"] == 1

    data = await client.get("/api/data/all")
    assert data.status_code == status.HTTP_200_OK
    assert data.json()["totals"]["students"] == 2


@pytest.mark.asyncio
async def test_startup_survives_unexpected_recomputation_error(monkeypatch):
    async def broken_refresh(self):
        raise ValueError("unexpected record shape")

    monkeypatch.setattr(SurveyService, "refresh_analysis", broken_refresh)
    app_instance = FastAPI()

    async with lifespan(app_instance):
        assert isinstance(app_instance.state.survey_service, SurveyService)
