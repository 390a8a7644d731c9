"""Base interface for quiz frame rendering and video assembly."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quiz_engine.domain.models import QuizContent


@dataclass
class FrameSet:
    """Rendered still frames for one quiz, in display order."""

    frame_paths: list[str]
    resolution: str = "1080x1920"  # Vertical for Shorts
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class FrameRenderResult:
    """Result from rendering quiz frames."""

    success: bool
    frames: FrameSet | None = None
    error_message: str | None = None
    retryable: bool = True


@dataclass
class AssemblyResult:
    """Result from assembling frames into a video."""

    success: bool
    video_path: Path | None = None
    duration_seconds: float | None = None
    error_message: str | None = None
    retryable: bool = True
    metadata: dict[str, Any] | None = None


class FrameRenderer(ABC):
    """Abstract base class for frame renderers.

    Implementations:
    - StubFrameRenderer: Writes placeholder files for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def render_frames(self, content: QuizContent, job_id: str) -> FrameRenderResult:
        """Render the question, options and answer frames for a quiz.

        Args:
            content: Validated quiz content from step 1
            job_id: Job identifier, used to name output files

        Returns:
            FrameRenderResult with the rendered frame set or error information
        """
        ...

    @abstractmethod
    async def assemble(self, frames: FrameSet, audio_track: str, job_id: str) -> AssemblyResult:
        """Combine frames and a background track into a single video.

        Args:
            frames: Frame set produced by render_frames
            audio_track: Background track file name
            job_id: Job identifier, used to name the output file

        Returns:
            AssemblyResult with the video path or error information
        """
        ...

    async def health_check(self) -> bool:
        """Check if the renderer is available and healthy."""
        return True
