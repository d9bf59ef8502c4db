"""Survey blob model used by the database record store."""
from __future__ import annotations

from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, JSON, String

from lms_survey.database import Base


class SurveyBlob(Base):
    """One persisted JSON document: a record collection or the analysis document."""

    __tablename__ = "survey_blobs"

    name = Column(String(64), primary_key=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<SurveyBlob(name={self.name}, updated_at={self.updated_at})>"
