"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
_DB_DIR = tempfile.mkdtemp(prefix="quiz_engine_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"
os.environ["CRON_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

CRON_SECRET = "test-secret"


@pytest.fixture
def db_session() -> Generator[Any, None, None]:
    """Fresh schema on the shared SQLite file for each test."""
    from quiz_engine.db.models import Base
    from quiz_engine.db.session import SessionLocal, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_session(db_session: Any) -> Any:
    """Session with the built-in personas seeded."""
    from quiz_engine.services.personas import PersonaStore

    PersonaStore(db_session).seed_defaults()
    return db_session


@pytest.fixture(scope="session")
def test_client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    from quiz_engine.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture
def content_generator():
    """Get a stub content generator."""
    from quiz_engine.adapters.content.stub import StubContentGenerator

    return StubContentGenerator()


@pytest.fixture
def frame_renderer(tmp_path: Path):
    """Get a stub frame renderer writing into the test's tmp dir."""
    from quiz_engine.adapters.renderer.stub import StubFrameRenderer

    return StubFrameRenderer(output_dir=tmp_path / "render")


@pytest.fixture
def publisher_adapter():
    """Get a stub publisher adapter."""
    from quiz_engine.adapters.publisher.stub import StubPublisherAdapter

    return StubPublisherAdapter()


@pytest.fixture
def metrics_provider():
    """Get a stub metrics provider."""
    from quiz_engine.adapters.metrics.stub import StubMetricsProvider

    return StubMetricsProvider()


@pytest.fixture
def processors(content_generator, frame_renderer, publisher_adapter):
    """One stub-backed processor per pipeline step."""
    from quiz_engine.services.providers import build_processors

    return build_processors(content_generator, frame_renderer, publisher_adapter)


def _make_published_job(
    session: Any,
    persona: str = "english_vocab_builder",
    fmt: str = "mcq",
    audio_track: str = "1.mp3",
    published_at: datetime | None = None,
    published_id: str | None = None,
    account_id: str = "default",
    category: str = "eng_vocab_idioms",
) -> Any:
    """Insert a completed job carrying publish artifacts."""
    from quiz_engine.db.models import JobModel

    now = datetime.now(UTC)
    row = JobModel(
        account_id=account_id,
        persona=persona,
        category=category,
        difficulty="medium",
        step=4,
        status="completed",
        retry_count=0,
        data={
            "format": fmt,
            "audio_track": audio_track,
            "published_id": published_id or f"vid_{uuid4().hex[:8]}",
            "published_at": (published_at or now).isoformat(),
        },
        created_at=now,
        updated_at=now,
    )
    session.add(row)
    session.commit()
    return row


def _add_record(
    session: Any,
    persona: str = "english_vocab_builder",
    fmt: str = "mcq",
    timing_bucket: str = "morning",
    audio_track: str = "1.mp3",
    reward: float = 0.5,
    account_id: str = "default",
    views: int = 1000,
    engagement_rate: float = 5.0,
    category: str = "eng_vocab_idioms",
    collected_at: datetime | None = None,
) -> Any:
    """Insert one analytics snapshot for a fresh video."""
    from quiz_engine.db.models import AnalyticsRecordModel

    record = AnalyticsRecordModel(
        job_id=uuid4(),
        published_id=f"vid_{uuid4().hex[:10]}",
        account_id=account_id,
        persona=persona,
        category=category,
        format=fmt,
        timing_bucket=timing_bucket,
        audio_track=audio_track,
        views=views,
        likes=int(views * engagement_rate / 100),
        comments=0,
        engagement_rate=engagement_rate,
        reward_score=reward,
        collected_at=collected_at or datetime.now(UTC),
    )
    session.add(record)
    session.commit()
    return record


@pytest.fixture
def make_published_job():
    return _make_published_job


@pytest.fixture
def add_record():
    return _add_record
