"""Collaborator selection from configured provider names."""

import asyncio

from quiz_engine.adapters.content.base import ContentGenerator
from quiz_engine.adapters.content.llm import LLMContentGenerator
from quiz_engine.adapters.content.stub import StubContentGenerator
from quiz_engine.adapters.metrics.base import MetricsProvider
from quiz_engine.adapters.metrics.stub import StubMetricsProvider
from quiz_engine.adapters.metrics.youtube import YouTubeMetricsProvider
from quiz_engine.adapters.publisher.base import PublisherAdapter
from quiz_engine.adapters.publisher.stub import StubPublisherAdapter
from quiz_engine.adapters.renderer.base import FrameRenderer
from quiz_engine.adapters.renderer.stub import StubFrameRenderer
from quiz_engine.config import settings
from quiz_engine.domain.enums import PipelineStep
from quiz_engine.logging import get_logger
from quiz_engine.services.steps import (
    AssembleVideoStep,
    GenerateContentStep,
    PublishStep,
    RenderFramesStep,
    StepProcessor,
)

logger = get_logger(__name__)


def get_content_generator() -> ContentGenerator:
    """Get the configured content generator."""
    provider_name = settings.content_provider.lower()

    if provider_name == "llm":
        return LLMContentGenerator()
    if provider_name != "stub":
        logger.warning("unknown_content_provider", provider=provider_name, using="stub")
    return StubContentGenerator()


def get_renderer() -> FrameRenderer:
    """Get the configured frame renderer."""
    provider_name = settings.renderer_provider.lower()

    if provider_name != "stub":
        logger.warning("unknown_renderer_provider", provider=provider_name, using="stub")
    return StubFrameRenderer()


def get_publisher() -> PublisherAdapter:
    """Get the configured publisher."""
    provider_name = settings.publisher_provider.lower()

    if provider_name != "stub":
        logger.warning("unknown_publisher_provider", provider=provider_name, using="stub")
    return StubPublisherAdapter()


def get_metrics_provider() -> MetricsProvider:
    """Get the configured metrics provider."""
    provider_name = settings.metrics_provider.lower()

    if provider_name == "youtube":
        return YouTubeMetricsProvider()
    if provider_name != "stub":
        logger.warning("unknown_metrics_provider", provider=provider_name, using="stub")
    return StubMetricsProvider()


def build_processors(
    generator: ContentGenerator | None = None,
    renderer: FrameRenderer | None = None,
    publisher: PublisherAdapter | None = None,
) -> dict[PipelineStep, StepProcessor]:
    """Wire one processor per step, defaulting to the configured providers."""
    renderer = renderer or get_renderer()
    return {
        PipelineStep.GENERATE: GenerateContentStep(generator or get_content_generator()),
        PipelineStep.RENDER: RenderFramesStep(renderer),
        PipelineStep.ASSEMBLE: AssembleVideoStep(renderer),
        PipelineStep.PUBLISH: PublishStep(publisher or get_publisher()),
    }


async def check_collaborators() -> dict[str, bool]:
    """Run every configured adapter's health check.

    A check that raises counts as unhealthy.
    """
    adapters = {
        "content": get_content_generator(),
        "renderer": get_renderer(),
        "publisher": get_publisher(),
        "metrics": get_metrics_provider(),
    }
    results = await asyncio.gather(
        *(adapter.health_check() for adapter in adapters.values()),
        return_exceptions=True,
    )

    health: dict[str, bool] = {}
    for (role, adapter), result in zip(adapters.items(), results, strict=True):
        if isinstance(result, BaseException):
            logger.error(
                "adapter_health_check_failed",
                role=role,
                adapter=adapter.name,
                error=str(result),
            )
            result = False
        health[role] = bool(result)
    return health
