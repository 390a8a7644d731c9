"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from quiz_engine.domain.enums import (
    FINAL_STEP,
    ConfigSource,
    JobPhase,
    PipelineStep,
    RecommendationStatus,
    RefinementDimension,
)


@dataclass(frozen=True)
class JobState:
    """Structured position of a job in the pipeline."""

    step: PipelineStep
    phase: JobPhase

    @property
    def label(self) -> str:
        """Compact label such as ``pending@step3`` or ``completed``."""
        if self.phase.is_terminal:
            return str(self.phase)
        return f"{self.phase}@step{int(self.step)}"

    def after_success(self) -> "JobState":
        """State reached when the current step succeeds."""
        if self.step >= FINAL_STEP:
            return JobState(step=self.step, phase=JobPhase.COMPLETED)
        return JobState(step=PipelineStep(self.step + 1), phase=JobPhase.PENDING)


@dataclass
class Job:
    """Snapshot of a pipeline job handed to step processors."""

    id: UUID
    account_id: str
    persona: str
    category: str
    difficulty: str
    state: JobState
    retry_count: int = 0
    error_message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def step(self) -> PipelineStep:
        return self.state.step

    @property
    def phase(self) -> JobPhase:
        return self.state.phase

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "account_id": self.account_id,
            "persona": self.persona,
            "category": self.category,
            "difficulty": self.difficulty,
            "step": int(self.step),
            "status": str(self.phase),
            "state": self.state.label,
            "retry_count": self.retry_count,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class PersonaConfig:
    """Committed generation parameters for a persona.

    Step 1 reads this snapshot; refinement replaces it with a newer version.
    """

    persona: str
    display_name: str
    categories: tuple[str, ...]
    format: str
    timing_profile: str
    audio_track: str
    version: int = 1
    updated_source: ConfigSource = ConfigSource.SEED
    last_updated: datetime | None = None

    def value_for(self, dimension: RefinementDimension) -> str:
        return str(getattr(self, dimension.config_field))

    def to_dict(self) -> dict[str, Any]:
        return {
            "persona": self.persona,
            "display_name": self.display_name,
            "categories": list(self.categories),
            "format": self.format,
            "timing_profile": self.timing_profile,
            "audio_track": self.audio_track,
            "version": self.version,
            "updated_source": str(self.updated_source),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class InvalidContentError(ValueError):
    """Generated quiz content is missing required fields."""


@dataclass
class QuizContent:
    """A generated quiz question."""

    question: str
    options: dict[str, str]
    answer: str
    explanation: str
    format: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], format: str) -> "QuizContent":
        """Build content from a provider payload, validating its structure.

        Raises:
            InvalidContentError: If the payload lacks a question, at least two
                options, an answer that names one of the options, or an explanation.
        """
        question = data.get("question")
        options = data.get("options")
        answer = data.get("answer")
        explanation = data.get("explanation")

        if not isinstance(question, str) or not question.strip():
            raise InvalidContentError("missing question")
        if not isinstance(options, dict) or len(options) < 2:
            raise InvalidContentError("options must contain at least two choices")
        if not isinstance(answer, str) or answer not in options:
            raise InvalidContentError("answer must reference one of the options")
        if not isinstance(explanation, str) or not explanation.strip():
            raise InvalidContentError("missing explanation")

        known = {"question", "options", "answer", "explanation", "format"}
        return cls(
            question=question.strip(),
            options={str(k): str(v) for k, v in options.items()},
            answer=answer,
            explanation=explanation.strip(),
            format=format,
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "options": self.options,
            "answer": self.answer,
            "explanation": self.explanation,
            "format": self.format,
            **self.extra,
        }


@dataclass
class GroupStats:
    """Aggregate performance of the videos sharing one dimension value."""

    dimension: str
    value: str
    count: int
    mean_reward: float
    mean_engagement_rate: float
    mean_views: float
    stddev_reward: float
    low_confidence: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimension": self.dimension,
            "value": self.value,
            "count": self.count,
            "mean_reward": round(self.mean_reward, 4),
            "mean_engagement_rate": round(self.mean_engagement_rate, 4),
            "mean_views": round(self.mean_views, 2),
            "stddev_reward": round(self.stddev_reward, 4),
            "low_confidence": self.low_confidence,
        }


@dataclass
class Recommendation:
    """A candidate configuration change for one persona dimension."""

    persona: str
    dimension: RefinementDimension
    value: str
    status: RecommendationStatus
    delta: float | None
    count: int
    mean_reward: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "persona": self.persona,
            "dimension": str(self.dimension),
            "value": self.value,
            "status": str(self.status),
            "delta": round(self.delta, 4) if self.delta is not None else None,
            "count": self.count,
            "mean_reward": round(self.mean_reward, 4),
            "reason": self.reason,
        }
