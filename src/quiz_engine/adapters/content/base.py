"""Base interface for quiz content generators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from quiz_engine.domain.models import PersonaConfig, QuizContent


@dataclass
class ContentResult:
    """Result from generating quiz content.

    ``retryable`` distinguishes upstream hiccups (try again on a later trigger)
    from requests that can never succeed.
    """

    success: bool
    content: QuizContent | None = None
    error_message: str | None = None
    retryable: bool = True
    metadata: dict[str, Any] | None = None


class ContentGenerator(ABC):
    """Abstract base class for quiz content generators.

    Implementations:
    - StubContentGenerator: Deterministic canned questions for testing
    - LLMContentGenerator: OpenAI-compatible chat completions (DeepSeek by default)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(
        self,
        persona: str,
        category: str,
        difficulty: str,
        config: PersonaConfig,
    ) -> ContentResult:
        """Generate one quiz question.

        Args:
            persona: Persona key of the job
            category: Quiz category within the persona
            difficulty: easy, medium or hard
            config: Committed persona configuration (format, etc.)

        Returns:
            ContentResult with validated content or error information
        """
        ...

    async def health_check(self) -> bool:
        """Check if the generator is available."""
        return True
