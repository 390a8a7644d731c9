"""Base interface for video performance metrics providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class VideoMetrics:
    """A snapshot of video performance metrics."""

    published_id: str
    fetched_at: datetime
    views: int = 0
    likes: int = 0
    comments: int = 0
    watch_time_seconds: float | None = None
    avg_view_duration_seconds: float | None = None
    completion_rate: float | None = None  # 0-100, average percentage viewed
    raw_data: dict[str, Any] | None = None

    @property
    def engagement_rate(self) -> float:
        """(likes + comments) / views as a percentage."""
        if self.views <= 0:
            return 0.0
        return (self.likes + self.comments) / self.views * 100


class MetricsProvider(ABC):
    """Abstract base class for metrics providers.

    Implementations:
    - StubMetricsProvider: Deterministic simulated metrics for testing
    - YouTubeMetricsProvider: YouTube Data API public statistics
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def fetch_performance(self, published_id: str) -> VideoMetrics:
        """Fetch current metrics for a published video.

        Args:
            published_id: Platform video id returned by the publisher

        Returns:
            VideoMetrics with current performance data

        Raises:
            MetricsUnavailableError: If the platform cannot return metrics
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider can serve metrics."""
        return True


class MetricsUnavailableError(Exception):
    """Metrics could not be fetched for a video."""
