"""Survey submission workflow and read-only queries."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from lms_survey.config import Settings
from lms_survey.data.survey_fields import (
    ANALYSIS_DOCUMENT,
    ANONYMOUS_EXPORT_NAME,
    PROFESSORS_COLLECTION,
    STUDENTS_COLLECTION,
    ParticipationType,
    SurveyRole,
)
from lms_survey.services.aggregator import aggregate, anonymity_stats, empty_analysis
from lms_survey.services.normalizer import SurveyNormalizer
from lms_survey.services.record_store import RecordStore, StorageError
from lms_survey.utils.datetime_helpers import serialize_datetime_utc, utc_now
from lms_survey.version import APP_VERSION

logger = logging.getLogger(__name__)

EXPORT_SCRUBBED_FIELDS = ("originalName", "ip")


class RefreshPolicy(ABC):
    """Decides what happens to the analysis document after a durable append."""

    mode = "abstract"

    @abstractmethod
    async def after_append(self, service: "SurveyService") -> bool:
        """Return True when the analysis document was recomputed."""


class EagerRefreshPolicy(RefreshPolicy):
    """Recompute the whole analysis after every append."""

    mode = "eager"

    async def after_append(self, service: "SurveyService") -> bool:
        try:
            await service.refresh_analysis()
        except Exception as e:
            # The submission is already persisted; the next refresh repairs the analysis.
            logger.error(f"Analysis recomputation failed after append: {e}")
            return False
        return True


class ManualRefreshPolicy(RefreshPolicy):
    """Leave the analysis untouched until startup or an explicit refresh."""

    mode = "manual"

    async def after_append(self, service: "SurveyService") -> bool:
        logger.debug("Analysis refresh deferred until an explicit refresh")
        return False


def build_refresh_policy(mode: str) -> RefreshPolicy:
    if mode == ManualRefreshPolicy.mode:
        return ManualRefreshPolicy()
    return EagerRefreshPolicy()


@dataclass
class SubmissionResult:
    """Outcome of a stored submission."""

    role: SurveyRole
    record: dict[str, Any]
    analysis_refreshed: bool

    @property
    def record_id(self) -> int:
        return self.record["id"]

    @property
    def display_name(self) -> str:
        return self.record["name"]

    @property
    def anonymous(self) -> bool:
        return self.record["participationType"] == ParticipationType.ANONYMOUS.value


def scrub_for_export(record: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``record`` without audit fields; anonymous names become a generic placeholder."""
    scrubbed = {key: value for key, value in record.items() if key not in EXPORT_SCRUBBED_FIELDS}
    if scrubbed.get("participationType") == ParticipationType.ANONYMOUS.value:
        scrubbed["name"] = ANONYMOUS_EXPORT_NAME
    return scrubbed


class SurveyService:
    """Normalize -> append -> recompute, plus the read-only views over the stored blobs."""

    def __init__(
        self,
        store: RecordStore,
        *,
        normalizer: SurveyNormalizer | None = None,
        refresh_policy: RefreshPolicy | None = None,
        aggregator: Callable[..., dict[str, Any]] = aggregate,
        project_name: str = "LMS Research Survey",
        now: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.normalizer = normalizer or SurveyNormalizer()
        self.refresh_policy = refresh_policy or EagerRefreshPolicy()
        self.aggregator = aggregator
        self.project_name = project_name
        self._now = now

    @classmethod
    def from_settings(cls, store: RecordStore, settings: Settings) -> "SurveyService":
        normalizer = SurveyNormalizer(
            completion_time_range=(
                settings.completion_time_fallback_min,
                settings.completion_time_fallback_max,
            ),
        )
        return cls(
            store,
            normalizer=normalizer,
            refresh_policy=build_refresh_policy(settings.analysis_refresh_mode),
            project_name=settings.project_name,
        )

    async def initialize(self) -> list[str]:
        """Create any missing blob with its empty default; returns the created names."""
        await self.store.prepare()
        defaults = {
            STUDENTS_COLLECTION: [],
            PROFESSORS_COLLECTION: [],
            ANALYSIS_DOCUMENT: empty_analysis(self._now()),
        }
        created = []
        for name, default in defaults.items():
            if await self.store.initialize(name, default):
                created.append(name)
        return created

    async def _load_collection(self, name: str) -> list[dict[str, Any]]:
        data = await self.store.load(name)
        if not isinstance(data, list):
            raise StorageError(f"Blob '{name}' does not hold a record collection")
        return data

    async def submit(
        self,
        role: SurveyRole | str,
        payload: Any,
        client_ip: str | None = None,
    ) -> SubmissionResult:
        """
        Store one submission and refresh the analysis according to the policy.

        Raises:
            StorageError: if the collection cannot be read or written. No
                recomputation is attempted in that case.
        """
        role = SurveyRole(role)
        record = self.normalizer.normalize(payload, role, client_ip=client_ip)

        collection = await self._load_collection(role.collection_name)
        collection.append(record)
        await self.store.save(role.collection_name, collection)
        logger.info(
            f"Stored {role.value} survey {record['id']} "
            f"({record['participationType']}, {len(collection)} total)"
        )

        refreshed = await self.refresh_policy.after_append(self)
        return SubmissionResult(role=role, record=record, analysis_refreshed=refreshed)

    async def refresh_analysis(self) -> dict[str, Any]:
        """Recompute the analysis document from both collections and persist it."""
        students = await self._load_collection(STUDENTS_COLLECTION)
        professors = await self._load_collection(PROFESSORS_COLLECTION)
        analysis = self.aggregator(students, professors, now=self._now())
        await self.store.save(ANALYSIS_DOCUMENT, analysis)
        logger.info(
            f"Analysis recomputed for {len(students)} students and {len(professors)} professors"
        )
        return analysis

    async def get_all_data(self) -> dict[str, Any]:
        students = await self._load_collection(STUDENTS_COLLECTION)
        professors = await self._load_collection(PROFESSORS_COLLECTION)
        return {
            "students": students,
            "professors": professors,
            "totals": {
                "students": len(students),
                "professors": len(professors),
                "total": len(students) + len(professors),
            },
        }

    async def get_analysis(self) -> dict[str, Any]:
        """Last persisted analysis snapshot."""
        return await self.store.load(ANALYSIS_DOCUMENT)

    async def get_anonymous_stats(self) -> dict[str, Any]:
        students = await self._load_collection(STUDENTS_COLLECTION)
        professors = await self._load_collection(PROFESSORS_COLLECTION)
        stats = anonymity_stats(students, professors)
        stats["timestamp"] = serialize_datetime_utc(self._now())
        return stats

    async def build_export(self) -> dict[str, Any]:
        """Export bundle with audit fields removed and anonymous names hidden."""
        data = await self.get_all_data()
        return {
            "exportDate": serialize_datetime_utc(self._now()),
            "project": self.project_name,
            "totals": data["totals"],
            "students": [scrub_for_export(record) for record in data["students"]],
            "professors": [scrub_for_export(record) for record in data["professors"]],
        }

    async def health(self) -> dict[str, Any]:
        """Liveness plus presence of the three persisted blobs."""
        storage: dict[str, Any] = {"backend": self.store.backend_name}
        for name in (STUDENTS_COLLECTION, PROFESSORS_COLLECTION, ANALYSIS_DOCUMENT):
            try:
                storage[name] = await self.store.exists(name)
            except StorageError as e:
                logger.error(f"Health check for blob '{name}' failed: {e}")
                storage[name] = False

        all_present = all(storage[name] for name in (STUDENTS_COLLECTION, PROFESSORS_COLLECTION, ANALYSIS_DOCUMENT))
        return {
            "status": "ok" if all_present else "degraded",
            "timestamp": serialize_datetime_utc(self._now()),
            "version": APP_VERSION,
            "analysisRefreshMode": self.refresh_policy.mode,
            "storage": storage,
        }
