"""Domain enumerations."""

from enum import IntEnum, StrEnum


class PipelineStep(IntEnum):
    """Ordered stages a quiz job moves through."""

    GENERATE = 1
    RENDER = 2
    ASSEMBLE = 3
    PUBLISH = 4

    @property
    def label(self) -> str:
        return self.name.lower()


FINAL_STEP = PipelineStep.PUBLISH


class JobPhase(StrEnum):
    """Phase of a job within its current step."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobPhase.COMPLETED, JobPhase.FAILED)


class Difficulty(StrEnum):
    """Quiz difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuizFormat(StrEnum):
    """Layout/format used to present a quiz."""

    MCQ = "mcq"
    COMMON_MISTAKE = "common_mistake"
    QUICK_FIX = "quick_fix"
    QUICK_TIP = "quick_tip"
    USAGE_DEMO = "usage_demo"
    CHALLENGE = "challenge"
    BEFORE_AFTER = "before_after"
    TRUE_FALSE = "true_false"
    SIMPLIFIED_WORD = "simplified_word"


class TimingBucket(StrEnum):
    """Daypart of the upload time, in the analytics timezone."""

    MORNING = "morning"  # 06:00-11:59
    AFTERNOON = "afternoon"  # 12:00-17:59
    EVENING = "evening"  # 18:00-22:59
    NIGHT = "night"  # 23:00-05:59

    @classmethod
    def from_hour(cls, hour: int) -> "TimingBucket":
        """Get bucket from a local hour of day."""
        if 6 <= hour < 12:
            return cls.MORNING
        elif 12 <= hour < 18:
            return cls.AFTERNOON
        elif 18 <= hour < 23:
            return cls.EVENING
        else:
            return cls.NIGHT


class AudioTrack(StrEnum):
    """Background tracks available to the assembler."""

    TRACK_1 = "1.mp3"
    TRACK_2 = "2.mp3"
    TRACK_3 = "3.mp3"


class ConfigSource(StrEnum):
    """Provenance of the last persona configuration change."""

    SEED = "seed"
    MANUAL = "manual"
    REFINEMENT = "refinement"


class RefinementDimension(StrEnum):
    """Persona configuration dimensions tuned by refinement."""

    FORMAT = "format"
    TIMING = "timing_bucket"
    AUDIO = "audio_track"

    @property
    def config_field(self) -> str:
        """PersonaConfig attribute this dimension maps onto."""
        return {
            RefinementDimension.FORMAT: "format",
            RefinementDimension.TIMING: "timing_profile",
            RefinementDimension.AUDIO: "audio_track",
        }[self]


class RecommendationStatus(StrEnum):
    """Outcome of evaluating a candidate value."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    LOW_CONFIDENCE = "low_confidence"
