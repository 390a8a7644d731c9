"""Stub content generator for testing."""

import hashlib

from quiz_engine.adapters.content.base import ContentGenerator, ContentResult
from quiz_engine.domain.models import PersonaConfig, QuizContent
from quiz_engine.logging import get_logger

logger = get_logger(__name__)


class StubContentGenerator(ContentGenerator):
    """Stub generator that returns a canned multiple-choice question."""

    @property
    def name(self) -> str:
        return "stub"

    async def generate(
        self,
        persona: str,
        category: str,
        difficulty: str,
        config: PersonaConfig,
    ) -> ContentResult:
        """Return a deterministic question for the persona/category pair."""
        logger.info(
            "stub_generate_content",
            persona=persona,
            category=category,
            difficulty=difficulty,
            format=config.format,
        )

        digest = hashlib.sha1(f"{persona}:{category}:{difficulty}".encode()).hexdigest()[:8]
        answer = "ABCD"[int(digest, 16) % 4]
        content = QuizContent(
            question=f"[{difficulty}] Sample {category.replace('_', ' ')} question #{digest}?",
            options={letter: f"Option {letter}" for letter in "ABCD"},
            answer=answer,
            explanation=f"Option {answer} is correct for this {category} question.",
            format=config.format,
        )
        return ContentResult(
            success=True,
            content=content,
            metadata={"provider": self.name, "seed": digest},
        )
