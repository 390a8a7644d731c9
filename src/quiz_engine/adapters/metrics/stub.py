"""Stub metrics provider for testing."""

import random
from datetime import UTC, datetime

from quiz_engine.adapters.metrics.base import MetricsProvider, VideoMetrics
from quiz_engine.logging import get_logger

logger = get_logger(__name__)


class StubMetricsProvider(MetricsProvider):
    """Stub provider that returns simulated metrics.

    Values are seeded from the video id so repeated fetches agree.
    """

    @property
    def name(self) -> str:
        return "stub"

    async def fetch_performance(self, published_id: str) -> VideoMetrics:
        """Return simulated metrics."""
        logger.info("stub_fetch_performance", published_id=published_id)

        rng = random.Random(published_id)
        views = rng.randint(100, 10000)
        likes = int(views * rng.uniform(0.02, 0.12))
        comments = int(views * rng.uniform(0.001, 0.02))
        avg_view_duration = rng.uniform(5, 15)

        return VideoMetrics(
            published_id=published_id,
            fetched_at=datetime.now(UTC),
            views=views,
            likes=likes,
            comments=comments,
            watch_time_seconds=views * avg_view_duration,
            avg_view_duration_seconds=avg_view_duration,
            completion_rate=rng.uniform(30, 95),
            raw_data={"source": "stub"},
        )
