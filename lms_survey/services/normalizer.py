"""Turn raw survey payloads into complete, fully-defaulted records."""
from __future__ import annotations

import copy
import logging
import math
import random
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from lms_survey.data.survey_fields import (
    DISPLAY_NAME_PREFIXES,
    FIELD_DEFAULTS,
    UNSPECIFIED,
    ParticipationType,
    SurveyRole,
)
from lms_survey.utils.datetime_helpers import (
    format_human_timestamp,
    serialize_datetime_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

# Fields owned by the normalizer; submitted values for these are ignored.
BOOKKEEPING_FIELDS = frozenset({
    "id",
    "name",
    "originalName",
    "participationType",
    "role",
    "timestamp",
    "createdAt",
    "completionTime",
    "completed",
    "ip",
})


def is_empty_value(value: Any) -> bool:
    """None, blank strings and empty containers count as "not answered"."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def drop_non_finite(value: Any) -> Any:
    """Replace NaN and infinite floats, at any depth, with None."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Mapping):
        return {key: drop_non_finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [drop_non_finite(item) for item in value]
    return value


def coerce_to_default_shape(value: Any, default: Any) -> Any:
    """Make ``value`` the same container kind as the field's default."""
    if isinstance(default, list) and not isinstance(value, list):
        if isinstance(value, set):
            return sorted(value)
        if isinstance(value, tuple):
            return list(value)
        return [value]
    if isinstance(default, dict) and not isinstance(value, dict):
        return copy.deepcopy(default)
    return value


class RecordIdGenerator:
    """Epoch-millisecond ids, bumped so they stay strictly increasing in this process."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0

    def next_id(self) -> int:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


class SurveyNormalizer:
    """Applies per-role defaults, the display-name policy and bookkeeping fields."""

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        id_generator: RecordIdGenerator | None = None,
        now: Callable[[], datetime] = utc_now,
        completion_time_range: tuple[int, int] = (5, 15),
    ):
        self.rng = rng or random.Random()
        self.id_generator = id_generator or RecordIdGenerator()
        self._now = now
        self.completion_time_range = completion_time_range

    def generate_display_name(self, role: SurveyRole) -> str:
        """Random role prefix followed by a random 4-digit number."""
        prefix = self.rng.choice(DISPLAY_NAME_PREFIXES[role])
        return f"{prefix} {self.rng.randint(1000, 9999)}"

    def fallback_completion_time(self) -> int:
        low, high = self.completion_time_range
        return self.rng.randint(low, high)

    def normalize(
        self,
        raw_payload: Any,
        role: SurveyRole | str,
        client_ip: str | None = None,
    ) -> dict[str, Any]:
        """
        Build a complete record from a raw submission.

        Never raises: anything that is not a mapping is treated as an empty
        payload and every expected field falls back to its default. NaN and
        infinite numbers count as missing values.
        """
        role = SurveyRole(role)
        payload = drop_non_finite(raw_payload) if isinstance(raw_payload, Mapping) else {}

        raw_name = payload.get("name")
        original_name = raw_name if isinstance(raw_name, str) else ("" if raw_name is None else str(raw_name))
        submitted_name = original_name.strip()

        record: dict[str, Any] = {"id": self.id_generator.next_id()}
        for field, value in payload.items():
            if field not in BOOKKEEPING_FIELDS:
                record[field] = value

        for field, default in FIELD_DEFAULTS[role].items():
            value = payload.get(field)
            if is_empty_value(value):
                record[field] = copy.deepcopy(default)
            else:
                record[field] = coerce_to_default_shape(value, default)

        if submitted_name:
            display_name = submitted_name
            participation = ParticipationType.NAMED
        else:
            display_name = self.generate_display_name(role)
            participation = ParticipationType.ANONYMOUS

        completion_time = payload.get("completionTime")
        if is_empty_value(completion_time):
            completion_time = self.fallback_completion_time()

        created_at = self._now()
        record.update(
            name=display_name,
            originalName=original_name,
            participationType=participation.value,
            role=role.value,
            timestamp=format_human_timestamp(created_at),
            createdAt=serialize_datetime_utc(created_at),
            completionTime=completion_time,
            completed=True,
            ip=client_ip or UNSPECIFIED,
        )

        logger.debug(f"Normalized {role.value} record {record['id']} ({participation.value})")
        return record
