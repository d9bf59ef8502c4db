"""Persistence of whole survey collections and the analysis document.

Every blob is loaded and saved as a unit. There is no append primitive and no
locking: an append is a read-modify-write of the full collection, so two
interleaved writers can lose one of the appended records.
"""
from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from lms_survey.config import Settings
from lms_survey.data.survey_fields import (
    ANALYSIS_DOCUMENT,
    PROFESSORS_COLLECTION,
    STUDENTS_COLLECTION,
)
from lms_survey.database import Base
from lms_survey.models.survey_blob import SurveyBlob

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a persisted blob is missing, unreadable or unwritable."""


class RecordStore(ABC):
    """Load/save contract for named JSON blobs."""

    backend_name = "abstract"

    async def prepare(self) -> None:
        """Create whatever the backend needs before the first read."""

    @abstractmethod
    async def load(self, name: str) -> Any:
        """Return the full contents of the named blob."""

    @abstractmethod
    async def save(self, name: str, data: Any) -> None:
        """Replace the named blob with ``data``."""

    @abstractmethod
    async def exists(self, name: str) -> bool:
        """Whether the named blob has been persisted."""

    async def initialize(self, name: str, default: Any) -> bool:
        """Persist ``default`` under ``name`` unless the blob already exists.

        Returns True when the blob was created.
        """
        if await self.exists(name):
            return False
        await self.save(name, default)
        logger.info(f"Initialized empty {self.backend_name} blob '{name}'")
        return True

    async def close(self) -> None:
        """Release backend resources."""


class JsonFileRecordStore(RecordStore):
    """One pretty-printed UTF-8 JSON file per blob inside ``data_dir``."""

    backend_name = "file"

    def __init__(self, data_dir: str | Path, file_names: dict[str, str] | None = None):
        self.data_dir = Path(data_dir)
        self.file_names = file_names or {}

    def path_for(self, name: str) -> Path:
        return self.data_dir / self.file_names.get(name, f"{name}.json")

    async def prepare(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self.data_dir}: {e}") from e

    def _read(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def _write(self, path: Path, data: Any) -> None:
        # Readers only ever see the old or the new file, never a partial write.
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2, allow_nan=False)
            os.replace(tmp_path, path)
        finally:
            tmp_path.unlink(missing_ok=True)

    async def load(self, name: str) -> Any:
        path = self.path_for(name)
        try:
            return await asyncio.to_thread(self._read, path)
        except FileNotFoundError as e:
            raise StorageError(f"Blob '{name}' does not exist at {path}") from e
        except json.JSONDecodeError as e:
            raise StorageError(f"Blob '{name}' at {path} is not valid JSON: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read blob '{name}' at {path}: {e}") from e

    async def save(self, name: str, data: Any) -> None:
        path = self.path_for(name)
        try:
            await asyncio.to_thread(self._write, path, data)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Cannot write blob '{name}' to {path}: {e}") from e

    async def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()


class DatabaseRecordStore(RecordStore):
    """One ``survey_blobs`` row per blob, accessed through SQLAlchemy async sessions."""

    backend_name = "database"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def prepare(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot create survey_blobs table: {e}") from e

    async def load(self, name: str) -> Any:
        try:
            async with self.session_factory() as session:
                blob = await session.get(SurveyBlob, name)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot read blob '{name}': {e}") from e
        if blob is None:
            raise StorageError(f"Blob '{name}' does not exist")
        return copy.deepcopy(blob.payload)

    async def save(self, name: str, data: Any) -> None:
        try:
            async with self.session_factory() as session:
                await session.merge(
                    SurveyBlob(name=name, payload=data, updated_at=datetime.now(UTC))
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot write blob '{name}': {e}") from e

    async def exists(self, name: str) -> bool:
        try:
            async with self.session_factory() as session:
                return await session.get(SurveyBlob, name) is not None
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot check blob '{name}': {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()


def build_record_store(settings: Settings) -> RecordStore:
    """Create the record store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "database":
        from lms_survey.database import get_engine

        logger.info("Using database record store")
        return DatabaseRecordStore(get_engine())

    file_names = {
        STUDENTS_COLLECTION: settings.students_file,
        PROFESSORS_COLLECTION: settings.professors_file,
        ANALYSIS_DOCUMENT: settings.analysis_file,
    }
    logger.info(f"Using JSON file record store in {Path(settings.data_dir).absolute()}")
    return JsonFileRecordStore(settings.data_dir, file_names)
