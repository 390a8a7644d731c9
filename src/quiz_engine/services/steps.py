"""Step processors for the four pipeline stages.

A processor turns a claimed job snapshot into a typed outcome by calling one
external collaborator. Processors never touch the job store; the pipeline
driver persists whatever they return.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, ClassVar

from quiz_engine.adapters.content.base import ContentGenerator
from quiz_engine.adapters.publisher.base import PublisherAdapter, PublishRequest
from quiz_engine.adapters.renderer.base import FrameRenderer, FrameSet
from quiz_engine.domain.enums import AudioTrack, PipelineStep
from quiz_engine.domain.models import InvalidContentError, Job, PersonaConfig, QuizContent
from quiz_engine.logging import get_logger
from quiz_engine.presets import get_preset

logger = get_logger(__name__)


@dataclass
class StepContext:
    """Inputs for one processor call.

    ``persona_config`` is the committed configuration read by the driver just
    before dispatch, or None if the persona has no configuration.
    """

    job: Job
    persona_config: PersonaConfig | None = None


@dataclass
class Success:
    """The step finished; ``artifacts`` are merged into the job's data."""

    artifacts: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransientFailure:
    """The step may succeed if retried on a later trigger."""

    message: str


@dataclass
class PermanentFailure:
    """The step can never succeed for this job."""

    message: str


StepOutcome = Success | TransientFailure | PermanentFailure


class StepProcessor(ABC):
    """Base class for pipeline step processors."""

    step: ClassVar[PipelineStep]

    @abstractmethod
    async def run(self, ctx: StepContext) -> StepOutcome:
        """Process one claimed job and report the outcome."""
        ...


def _load_content(job: Job) -> QuizContent | None:
    raw = job.data.get("content")
    if not isinstance(raw, dict):
        return None
    try:
        fmt = raw.get("format") or job.data.get("format") or "mcq"
        return QuizContent.from_dict(raw, format=str(fmt))
    except InvalidContentError:
        return None


class GenerateContentStep(StepProcessor):
    """Step 1: generate quiz content from the persona's current configuration."""

    step = PipelineStep.GENERATE

    def __init__(self, generator: ContentGenerator) -> None:
        self.generator = generator

    async def run(self, ctx: StepContext) -> StepOutcome:
        job, config = ctx.job, ctx.persona_config
        if config is None:
            return PermanentFailure(f"Unknown persona: {job.persona}")
        if job.category not in config.categories:
            return PermanentFailure(
                f"Category {job.category} is not valid for persona {job.persona}"
            )

        result = await self.generator.generate(job.persona, job.category, job.difficulty, config)
        if not result.success or result.content is None:
            message = result.error_message or "Content generation failed"
            return TransientFailure(message) if result.retryable else PermanentFailure(message)

        logger.info(
            "content_generated",
            job_id=str(job.id),
            persona=job.persona,
            format=config.format,
            generator=self.generator.name,
        )
        return Success(
            {
                "content": result.content.to_dict(),
                "format": config.format,
                "config_version": config.version,
            }
        )


class RenderFramesStep(StepProcessor):
    """Step 2: render still frames from the generated content."""

    step = PipelineStep.RENDER

    def __init__(self, renderer: FrameRenderer) -> None:
        self.renderer = renderer

    async def run(self, ctx: StepContext) -> StepOutcome:
        job = ctx.job
        content = _load_content(job)
        if content is None:
            return PermanentFailure("Job has no valid quiz content to render")

        result = await self.renderer.render_frames(content, str(job.id))
        if not result.success or result.frames is None:
            message = result.error_message or "Frame rendering failed"
            return TransientFailure(message) if result.retryable else PermanentFailure(message)

        return Success(
            {
                "frames": {
                    "frame_paths": result.frames.frame_paths,
                    "resolution": result.frames.resolution,
                }
            }
        )


class AssembleVideoStep(StepProcessor):
    """Step 3: assemble frames and the persona's audio track into a video."""

    step = PipelineStep.ASSEMBLE

    def __init__(self, renderer: FrameRenderer) -> None:
        self.renderer = renderer

    async def run(self, ctx: StepContext) -> StepOutcome:
        job = ctx.job
        frames = job.data.get("frames")
        if not isinstance(frames, dict) or not frames.get("frame_paths"):
            return PermanentFailure("Job has no rendered frames to assemble")

        audio_track = (
            ctx.persona_config.audio_track if ctx.persona_config else str(AudioTrack.TRACK_1)
        )
        frame_set = FrameSet(
            frame_paths=list(frames["frame_paths"]),
            resolution=frames.get("resolution", "1080x1920"),
        )
        result = await self.renderer.assemble(frame_set, audio_track, str(job.id))
        if not result.success or result.video_path is None:
            message = result.error_message or "Video assembly failed"
            return TransientFailure(message) if result.retryable else PermanentFailure(message)

        return Success(
            {
                "video_path": str(result.video_path),
                "duration_seconds": result.duration_seconds,
                "audio_track": audio_track,
            }
        )


def build_publish_metadata(job: Job, content: QuizContent | None) -> dict[str, Any]:
    """Title, description and tags for the uploaded short."""
    preset = get_preset(job.persona)
    category = preset.category_name(job.category) if preset else job.category
    hashtags = list(preset.hashtags) if preset else ["#quiz", "#shorts"]

    if content is not None:
        title = content.question
        options = "\n".join(f"{key}) {value}" for key, value in sorted(content.options.items()))
        description = f"{content.question}\n\n{options}\n\nAnswer revealed at the end!"
    else:
        title = f"{category} quiz"
        description = f"{category} quiz"

    if len(title) > 90:
        title = title[:87].rstrip() + "..."
    return {
        "title": f"{title} #shorts",
        "description": f"{description}\n\n{' '.join(hashtags)}",
        "tags": [tag.lstrip("#") for tag in hashtags] + [job.category, job.difficulty],
    }


class PublishStep(StepProcessor):
    """Step 4: upload the assembled video."""

    step = PipelineStep.PUBLISH

    def __init__(self, publisher: PublisherAdapter) -> None:
        self.publisher = publisher

    async def run(self, ctx: StepContext) -> StepOutcome:
        job = ctx.job
        video_path = job.data.get("video_path")
        if not video_path:
            return PermanentFailure("Job has no assembled video to publish")

        metadata = build_publish_metadata(job, _load_content(job))
        response = await self.publisher.publish(
            PublishRequest(
                video_path=Path(video_path),
                title=metadata["title"],
                description=metadata["description"],
                tags=metadata["tags"],
                account_id=job.account_id,
            )
        )
        if not response.success or not response.published_id:
            message = response.error_message or "Publishing failed"
            return TransientFailure(message) if response.retryable else PermanentFailure(message)

        logger.info(
            "video_published",
            job_id=str(job.id),
            published_id=response.published_id,
            account_id=job.account_id,
        )
        return Success(
            {
                "published_id": response.published_id,
                "published_url": response.url,
                "published_at": datetime.now(UTC).isoformat(),
            }
        )
