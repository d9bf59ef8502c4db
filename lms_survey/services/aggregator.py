"""Descriptive statistics over the student and professor collections.

Everything here is a pure function of its inputs. The analysis document is
rebuilt from scratch on every call; nothing is carried over from a previous
document except through the collections themselves.
"""
from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from lms_survey.data.survey_fields import (
    INSUFFICIENT_DATA_INSIGHT,
    SATISFACTION_LABELS_BY_SCORE,
    SATISFACTION_LEVELS,
    UNSPECIFIED,
    ParticipationType,
)
from lms_survey.utils.datetime_helpers import serialize_datetime_utc, utc_now

Record = Mapping[str, Any]

_LEADING_NUMBER = re.compile(r"^\s*([+-]?\d+(?:\.\d+)?)")


def _records(collection: Iterable[Any]) -> list[Record]:
    return [item for item in collection if isinstance(item, Mapping)]


def parse_number(value: Any) -> float:
    """Leading numeric value of ``value`` ("12 min" -> 12.0); 0 when there is none or it is not finite."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            match = _LEADING_NUMBER.match(str(value))
            number = float(match.group(1)) if match else 0.0
    except (OverflowError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _group_key(value: Any) -> str:
    if not value:
        return UNSPECIFIED
    if isinstance(value, (list, tuple)):
        return "، ".join(str(item) for item in value)
    return str(value)


def group_by(records: Iterable[Record], field: str) -> dict[str, int]:
    """Count records per observed value of ``field``; missing values count as unspecified."""
    counts: dict[str, int] = {}
    for record in _records(records):
        key = _group_key(record.get(field))
        counts[key] = counts.get(key, 0) + 1
    return counts


def completion_rate(records: Iterable[Record]) -> float:
    """Percentage of completed records, one decimal; 0 for no records."""
    records = _records(records)
    if not records:
        return 0
    completed = sum(1 for record in records if record.get("completed") is True)
    return round(completed / len(records) * 100, 1)


def average_time(records: Iterable[Record]) -> float:
    """Mean of the positive completion times, one decimal; 0 when none are valid."""
    times = [parse_number(record.get("completionTime")) for record in _records(records)]
    valid = [t for t in times if t > 0]
    if not valid:
        return 0
    return round(sum(valid) / len(valid), 1)


def rank_features(records: Iterable[Record]) -> dict[str, float]:
    """
    Mean rating per feature, ordered from best to worst.

    Features with equal means keep the order in which they were first seen.
    """
    totals: dict[str, list[float]] = {}
    for record in _records(records):
        ratings = record.get("featureRatings")
        if not isinstance(ratings, Mapping):
            continue
        for feature, rating in ratings.items():
            entry = totals.setdefault(str(feature), [0.0, 0])
            entry[0] += parse_number(rating)
            entry[1] += 1

    averages = [(feature, total / count) for feature, (total, count) in totals.items() if count]
    averages.sort(key=lambda item: item[1], reverse=True)
    return {feature: round(mean, 2) for feature, mean in averages}


def satisfaction_label(record: Record) -> str | None:
    """Satisfaction level of a record, from a literal label or a 1-5 score."""
    value = record.get("overallSatisfaction") or record.get("systemUsefulness")
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if stripped in SATISFACTION_LEVELS:
            return stripped
        if not stripped.isdecimal():
            return None
        try:
            value = int(stripped)
        except ValueError:
            return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return SATISFACTION_LABELS_BY_SCORE.get(value)
    return None


def satisfaction_levels(records: Iterable[Record]) -> dict[str, int]:
    """Histogram over the five fixed levels; unrecognized values are left out."""
    levels = {label: 0 for label in SATISFACTION_LEVELS}
    for record in _records(records):
        label = satisfaction_label(record)
        if label is not None:
            levels[label] += 1
    return levels


def average_satisfaction(records: Iterable[Record]) -> float:
    scores = [
        SATISFACTION_LEVELS[label]
        for label in (satisfaction_label(record) for record in _records(records))
        if label is not None
    ]
    return sum(scores) / len(scores) if scores else 0


def is_anonymous(record: Record) -> bool:
    return record.get("participationType") == ParticipationType.ANONYMOUS.value


def anonymous_percentage(anonymous: int, total: int) -> int:
    return round(anonymous / total * 100) if total else 0


def anonymity_stats(students: Iterable[Record], professors: Iterable[Record]) -> dict[str, Any]:
    """Named/anonymous counts per role and overall."""
    stats: dict[str, Any] = {}
    overall_total = overall_anonymous = 0
    for role, collection in (("students", _records(students)), ("professors", _records(professors))):
        anonymous = sum(1 for record in collection if is_anonymous(record))
        stats[role] = {
            "total": len(collection),
            "anonymous": anonymous,
            "named": len(collection) - anonymous,
        }
        overall_total += len(collection)
        overall_anonymous += anonymous

    stats["overall"] = {
        "total": overall_total,
        "anonymous": overall_anonymous,
        "named": overall_total - overall_anonymous,
        "anonymousPercentage": anonymous_percentage(overall_anonymous, overall_total),
    }
    return stats


def find_top_need(records: Iterable[Record], field: str) -> tuple[str, int] | None:
    """Most frequent entry of a choice/free-text field; earliest seen wins ties."""
    counts: dict[str, int] = {}
    for record in _records(records):
        value = record.get(field)
        if not value:
            continue
        for need in value if isinstance(value, (list, tuple)) else [value]:
            if not need:
                continue
            key = str(need)
            counts[key] = counts.get(key, 0) + 1

    best: tuple[str, int] | None = None
    for need, count in counts.items():
        if best is None or count > best[1]:
            best = (need, count)
    return best


def generate_insights(students: Iterable[Record], professors: Iterable[Record]) -> list[str]:
    students = _records(students)
    professors = _records(professors)
    insights: list[str] = []

    top_student_need = find_top_need(students, "needs")
    if top_student_need:
        need, count = top_student_need
        insights.append(f"أكثر احتياجات الطلاب شيوعاً: {need} ({count})")

    top_professor_need = find_top_need(professors, "requirements")
    if top_professor_need:
        need, count = top_professor_need
        insights.append(f"أكثر متطلبات الهيئة التدريسية شيوعاً: {need} ({count})")

    student_satisfaction = average_satisfaction(students)
    professor_satisfaction = average_satisfaction(professors)
    if student_satisfaction and professor_satisfaction:
        if student_satisfaction > professor_satisfaction:
            insights.append("الطلاب أكثر رضا عن النظام الحالي من الهيئة التدريسية")
        elif professor_satisfaction > student_satisfaction:
            insights.append("الهيئة التدريسية أكثر رضا عن النظام الحالي من الطلاب")

    total = len(students) + len(professors)
    if total:
        anonymous = sum(1 for record in students + professors if is_anonymous(record))
        insights.append(f"نسبة المشاركة المجهولة: {anonymous_percentage(anonymous, total)}% من إجمالي المشاركين")

    return insights or [INSUFFICIENT_DATA_INSIGHT]


def aggregate(
    students: Iterable[Record],
    professors: Iterable[Record],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the full analysis document (summary, charts, insights, lastUpdated)."""
    students = _records(students)
    professors = _records(professors)
    all_responses = students + professors
    anonymity = anonymity_stats(students, professors)["overall"]

    return {
        "summary": {
            "totalParticipants": len(all_responses),
            "studentCount": len(students),
            "professorCount": len(professors),
            "completionRate": completion_rate(all_responses),
            "averageTime": average_time(all_responses),
            "anonymousCount": anonymity["anonymous"],
            "anonymousPercentage": anonymity["anonymousPercentage"],
        },
        "charts": {
            "byGender": group_by(all_responses, "gender"),
            "byAge": group_by(all_responses, "age"),
            "byEducation": group_by(all_responses, "educationLevel"),
            "byExperience": group_by(all_responses, "experience"),
            "byMajor": group_by(students, "major"),
            "byDepartment": group_by(professors, "department"),
            "byParticipationType": group_by(all_responses, "participationType"),
            "featureRankings": rank_features(all_responses),
            "satisfactionLevels": satisfaction_levels(all_responses),
        },
        "insights": generate_insights(students, professors),
        "lastUpdated": serialize_datetime_utc(now or utc_now()),
    }


def empty_analysis(now: datetime | None = None) -> dict[str, Any]:
    """Placeholder document persisted before the first recomputation."""
    return {
        "summary": {},
        "charts": {},
        "insights": [],
        "lastUpdated": serialize_datetime_utc(now or utc_now()),
    }
