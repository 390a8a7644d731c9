"""Quiz content generators."""

from quiz_engine.adapters.content.base import ContentGenerator, ContentResult
from quiz_engine.adapters.content.llm import LLMContentGenerator
from quiz_engine.adapters.content.stub import StubContentGenerator

__all__ = [
    "ContentGenerator",
    "ContentResult",
    "LLMContentGenerator",
    "StubContentGenerator",
]
