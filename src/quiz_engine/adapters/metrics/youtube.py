"""YouTube metrics provider using the public Data API."""

from datetime import UTC, datetime

import httpx

from quiz_engine.adapters.metrics.base import (
    MetricsProvider,
    MetricsUnavailableError,
    VideoMetrics,
)
from quiz_engine.config import settings
from quiz_engine.logging import get_logger

logger = get_logger(__name__)

YOUTUBE_DATA_URL = "https://www.googleapis.com/youtube/v3/videos"


class YouTubeMetricsProvider(MetricsProvider):
    """Fetches view/like/comment counts via ``videos.list``.

    Only public statistics are available with an API key; watch time and
    retention need the OAuth-scoped Analytics API and are left empty.
    """

    def __init__(self, api_key: str | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.api_key = api_key or settings.youtube_api_key
        self._client = client

        if not self.api_key:
            logger.warning("youtube_api_key_not_configured")

    @property
    def name(self) -> str:
        return "youtube"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30)
        return self._client

    async def health_check(self) -> bool:
        """Usable only with an API key; quota is not checked."""
        return bool(self.api_key)

    async def fetch_performance(self, published_id: str) -> VideoMetrics:
        """Fetch current statistics for one video."""
        if not self.api_key:
            raise MetricsUnavailableError("YouTube API key not configured")

        client = await self._get_client()
        try:
            response = await client.get(
                YOUTUBE_DATA_URL,
                params={"part": "statistics", "id": published_id, "key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise MetricsUnavailableError(f"YouTube Data API unreachable: {e}") from e

        if response.status_code != 200:
            logger.error(
                "youtube_data_api_error",
                status=response.status_code,
                body=response.text[:500],
            )
            raise MetricsUnavailableError(f"YouTube Data API error: {response.status_code}")

        items = response.json().get("items", [])
        if not items:
            raise MetricsUnavailableError(f"Video not found: {published_id}")

        stats = items[0].get("statistics", {})
        return VideoMetrics(
            published_id=published_id,
            fetched_at=datetime.now(UTC),
            views=int(stats.get("viewCount", 0)),
            likes=int(stats.get("likeCount", 0)),
            comments=int(stats.get("commentCount", 0)),
            raw_data=stats,
        )
