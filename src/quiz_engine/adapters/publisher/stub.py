"""Stub publisher adapter for testing."""

from uuid import uuid4

from quiz_engine.adapters.publisher.base import PublisherAdapter, PublishRequest, PublishResponse
from quiz_engine.logging import get_logger

logger = get_logger(__name__)


class StubPublisherAdapter(PublisherAdapter):
    """Stub adapter that pretends to upload and returns a fake video id."""

    @property
    def name(self) -> str:
        return "stub"

    async def publish(self, request: PublishRequest) -> PublishResponse:
        """Simulate publishing a video."""
        published_id = f"stub_{uuid4().hex[:11]}"
        logger.info(
            "stub_publish",
            title=request.title,
            account_id=request.account_id,
            published_id=published_id,
        )
        return PublishResponse(
            success=True,
            published_id=published_id,
            url=f"https://youtube.com/shorts/{published_id}",
            metadata={"provider": self.name, "visibility": request.visibility},
        )
