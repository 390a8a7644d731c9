"""Video performance metrics providers."""

from quiz_engine.adapters.metrics.base import (
    MetricsProvider,
    MetricsUnavailableError,
    VideoMetrics,
)
from quiz_engine.adapters.metrics.stub import StubMetricsProvider
from quiz_engine.adapters.metrics.youtube import YouTubeMetricsProvider

__all__ = [
    "MetricsProvider",
    "MetricsUnavailableError",
    "StubMetricsProvider",
    "VideoMetrics",
    "YouTubeMetricsProvider",
]
