"""SQLAlchemy ORM models."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class JobModel(Base):
    """Quiz pipeline job ORM model.

    ``step`` and ``status`` together form the job state; ``data`` only carries
    artifacts produced by completed steps.
    """

    __tablename__ = "quiz_jobs"
    __table_args__ = (Index("ix_quiz_jobs_claim", "step", "status", "created_at"),)

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    persona: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False)
    step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class PersonaConfigModel(Base):
    """Versioned persona generation parameters."""

    __tablename__ = "persona_configs"

    persona: Mapped[str] = mapped_column(String(100), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    categories: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    format: Mapped[str] = mapped_column(String(50), nullable=False)
    timing_profile: Mapped[str] = mapped_column(String(20), nullable=False)
    audio_track: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_source: Mapped[str] = mapped_column(String(20), nullable=False, default="seed")
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class AnalyticsRecordModel(Base):
    """Append-only performance snapshot for a published video.

    A refreshed reading is a new row with a later ``collected_at``; rows are
    never updated in place.
    """

    __tablename__ = "video_analytics"
    __table_args__ = (
        Index("ix_video_analytics_published_collected", "published_id", "collected_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[PyUUID] = mapped_column(Uuid, nullable=False, index=True)
    published_id: Mapped[str] = mapped_column(String(100), nullable=False)
    account_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    persona: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    format: Mapped[str] = mapped_column(String(50), nullable=False)
    timing_bucket: Mapped[str] = mapped_column(String(20), nullable=False)
    audio_track: Mapped[str] = mapped_column(String(100), nullable=False)
    views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    watch_time_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_view_duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    completion_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    engagement_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reward_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    collected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class RefinementReportModel(Base):
    """Stored output of one refinement run. Never mutated after insert."""

    __tablename__ = "refinement_reports"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    report_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    report: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    applied: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
