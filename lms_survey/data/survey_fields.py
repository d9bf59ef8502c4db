"""Expected survey fields, their defaults, and the fixed label sets used by the analysis."""
from __future__ import annotations

from enum import Enum
from typing import Any


class SurveyRole(str, Enum):
    """Respondent role enumeration for type safety."""
    STUDENT = "student"
    PROFESSOR = "professor"

    @property
    def collection_name(self) -> str:
        return "students" if self is SurveyRole.STUDENT else "professors"


class ParticipationType(str, Enum):
    """Whether the respondent supplied a name."""
    NAMED = "named"
    ANONYMOUS = "anonymous"


UNSPECIFIED = "غير محدد"
ANONYMOUS_EXPORT_NAME = "مشارك مجهول"
INSUFFICIENT_DATA_INSIGHT = "لا توجد insights كافية بعد"

STUDENTS_COLLECTION = "students"
PROFESSORS_COLLECTION = "professors"
ANALYSIS_DOCUMENT = "analysis"

# Defaults applied when a field is missing or empty in the submitted payload.
STUDENT_FIELD_DEFAULTS: dict[str, Any] = {
    "gender": UNSPECIFIED,
    "age": UNSPECIFIED,
    "major": UNSPECIFIED,
    "educationLevel": UNSPECIFIED,
    "academicYear": UNSPECIFIED,
    "currentSystem": UNSPECIFIED,
    "usageFrequency": UNSPECIFIED,
    "deviceType": UNSPECIFIED,
    "featureRatings": {},
    "needs": [],
    "challenges": [],
    "overallSatisfaction": 0,
    "suggestions": UNSPECIFIED,
}

PROFESSOR_FIELD_DEFAULTS: dict[str, Any] = {
    "gender": UNSPECIFIED,
    "age": UNSPECIFIED,
    "department": UNSPECIFIED,
    "academicRank": UNSPECIFIED,
    "educationLevel": UNSPECIFIED,
    "experience": UNSPECIFIED,
    "currentSystem": UNSPECIFIED,
    "usageFrequency": UNSPECIFIED,
    "featureRatings": {},
    "requirements": [],
    "challenges": [],
    "systemUsefulness": 0,
    "suggestions": UNSPECIFIED,
}

FIELD_DEFAULTS: dict[SurveyRole, dict[str, Any]] = {
    SurveyRole.STUDENT: STUDENT_FIELD_DEFAULTS,
    SurveyRole.PROFESSOR: PROFESSOR_FIELD_DEFAULTS,
}

DISPLAY_NAME_PREFIXES: dict[SurveyRole, tuple[str, ...]] = {
    SurveyRole.STUDENT: ("طالب", "طالبة", "مشارك"),
    SurveyRole.PROFESSOR: ("أستاذ", "دكتور", "عضو هيئة تدريس"),
}

SUBMISSION_MESSAGES: dict[SurveyRole, str] = {
    SurveyRole.STUDENT: "تم حفظ استبيان الطالب بنجاح",
    SurveyRole.PROFESSOR: "تم حفظ استبيان الهيئة التدريسية بنجاح",
}

# Ordered from highest to lowest; the score is the position on the 1-5 scale.
SATISFACTION_LEVELS: dict[str, int] = {
    "مرتفع جداً": 5,
    "مرتفع": 4,
    "متوسط": 3,
    "منخفض": 2,
    "منخفض جداً": 1,
}

SATISFACTION_LABELS_BY_SCORE: dict[int, str] = {
    score: label for label, score in SATISFACTION_LEVELS.items()
}
