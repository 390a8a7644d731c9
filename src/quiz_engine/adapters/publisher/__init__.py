"""Video publishing adapters."""

from quiz_engine.adapters.publisher.base import (
    PublisherAdapter,
    PublishRequest,
    PublishResponse,
)
from quiz_engine.adapters.publisher.stub import StubPublisherAdapter

__all__ = [
    "PublisherAdapter",
    "PublishRequest",
    "PublishResponse",
    "StubPublisherAdapter",
]
