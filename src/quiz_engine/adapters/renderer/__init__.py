"""Frame rendering and video assembly."""

from quiz_engine.adapters.renderer.base import (
    AssemblyResult,
    FrameRenderer,
    FrameRenderResult,
    FrameSet,
)
from quiz_engine.adapters.renderer.stub import StubFrameRenderer

__all__ = [
    "AssemblyResult",
    "FrameRenderer",
    "FrameRenderResult",
    "FrameSet",
    "StubFrameRenderer",
]
