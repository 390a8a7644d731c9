"""Domain models and enumerations."""

from quiz_engine.domain.enums import (
    FINAL_STEP,
    AudioTrack,
    ConfigSource,
    Difficulty,
    JobPhase,
    PipelineStep,
    QuizFormat,
    RecommendationStatus,
    RefinementDimension,
    TimingBucket,
)
from quiz_engine.domain.models import (
    GroupStats,
    Job,
    JobState,
    PersonaConfig,
    QuizContent,
    Recommendation,
)

__all__ = [
    "FINAL_STEP",
    "AudioTrack",
    "ConfigSource",
    "Difficulty",
    "GroupStats",
    "Job",
    "JobPhase",
    "JobState",
    "PersonaConfig",
    "PipelineStep",
    "QuizContent",
    "QuizFormat",
    "Recommendation",
    "RecommendationStatus",
    "RefinementDimension",
    "TimingBucket",
]
