"""Base interface for video publishing adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class PublishRequest:
    """Request to publish a quiz video."""

    video_path: Path
    title: str
    description: str | None = None
    tags: list[str] | None = None
    account_id: str | None = None
    visibility: str = "public"  # public, private, unlisted


@dataclass
class PublishResponse:
    """Response from publishing a video.

    Quota and authorization rejections set ``retryable=False``; network errors
    leave it True.
    """

    success: bool
    published_id: str | None = None
    url: str | None = None
    error_message: str | None = None
    retryable: bool = True
    metadata: dict[str, Any] | None = None


class PublisherAdapter(ABC):
    """Abstract base class for publishing adapters.

    Implementations:
    - StubPublisherAdapter: Returns mock ids for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def publish(self, request: PublishRequest) -> PublishResponse:
        """Publish a video.

        Args:
            request: Publish request with video path and metadata

        Returns:
            PublishResponse with the platform video id or error
        """
        ...

    async def health_check(self) -> bool:
        """Check if the publisher is available and authenticated."""
        return True
