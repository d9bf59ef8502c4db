"""Utilities module - datetime helpers."""
from lms_survey.utils.datetime_helpers import ensure_utc, serialize_datetime_utc, utc_now

__all__ = ["ensure_utc", "serialize_datetime_utc", "utc_now"]
