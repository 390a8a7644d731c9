"""Stub frame renderer for testing."""

import asyncio
import tempfile
from pathlib import Path

from quiz_engine.adapters.renderer.base import (
    AssemblyResult,
    FrameRenderer,
    FrameRenderResult,
    FrameSet,
)
from quiz_engine.domain.models import QuizContent
from quiz_engine.logging import get_logger

logger = get_logger(__name__)

FRAME_NAMES = ("question", "options", "answer")


class StubFrameRenderer(FrameRenderer):
    """Stub renderer that writes placeholder files without external dependencies."""

    def __init__(self, output_dir: Path | None = None, delay: float = 0.0) -> None:
        self.output_dir = output_dir or Path(tempfile.gettempdir()) / "quiz_engine"
        self.delay = delay

    @property
    def name(self) -> str:
        return "stub"

    async def render_frames(self, content: QuizContent, job_id: str) -> FrameRenderResult:
        """Write one placeholder PNG per frame."""
        logger.info("stub_render_frames_started", job_id=job_id, format=content.format)
        if self.delay:
            await asyncio.sleep(self.delay)

        job_dir = self.output_dir / job_id
        job_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for index, frame in enumerate(FRAME_NAMES, start=1):
            path = job_dir / f"frame_{index}_{frame}.png"
            path.write_bytes(b"STUB_FRAME_" + frame.encode())
            paths.append(str(path))

        logger.info("stub_render_frames_completed", job_id=job_id, frame_count=len(paths))
        return FrameRenderResult(
            success=True,
            frames=FrameSet(frame_paths=paths, metadata={"provider": self.name}),
        )

    async def assemble(self, frames: FrameSet, audio_track: str, job_id: str) -> AssemblyResult:
        """Write a placeholder MP4 referencing the frames and track."""
        logger.info(
            "stub_assemble_started",
            job_id=job_id,
            frame_count=len(frames.frame_paths),
            audio_track=audio_track,
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        job_dir = self.output_dir / job_id
        job_dir.mkdir(parents=True, exist_ok=True)
        video_path = job_dir / "quiz.mp4"
        video_path.write_bytes(b"STUB_VIDEO_" + audio_track.encode())

        return AssemblyResult(
            success=True,
            video_path=video_path,
            duration_seconds=5.0 * len(frames.frame_paths),
            metadata={"provider": self.name, "audio_track": audio_track},
        )
