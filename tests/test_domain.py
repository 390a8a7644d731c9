"""Tests for domain models."""

import pytest

from quiz_engine.domain.enums import (
    ConfigSource,
    JobPhase,
    PipelineStep,
    RefinementDimension,
    TimingBucket,
)
from quiz_engine.domain.models import (
    InvalidContentError,
    JobState,
    PersonaConfig,
    QuizContent,
)


def _config(**overrides) -> PersonaConfig:
    values = {
        "persona": "english_vocab_builder",
        "display_name": "Vocabulary Shots",
        "categories": ("eng_vocab_idioms",),
        "format": "mcq",
        "timing_profile": "morning",
        "audio_track": "1.mp3",
    }
    values.update(overrides)
    return PersonaConfig(**values)


class TestJobState:
    def test_labels(self) -> None:
        assert JobState(PipelineStep.RENDER, JobPhase.PENDING).label == "pending@step2"
        assert JobState(PipelineStep.ASSEMBLE, JobPhase.PROCESSING).label == "processing@step3"
        assert JobState(PipelineStep.PUBLISH, JobPhase.COMPLETED).label == "completed"
        assert JobState(PipelineStep.GENERATE, JobPhase.FAILED).label == "failed"

    def test_success_advances_exactly_one_step(self) -> None:
        state = JobState(PipelineStep.GENERATE, JobPhase.PROCESSING)

        assert state.after_success() == JobState(PipelineStep.RENDER, JobPhase.PENDING)

    def test_success_at_final_step_completes(self) -> None:
        state = JobState(PipelineStep.PUBLISH, JobPhase.PROCESSING)

        assert state.after_success() == JobState(PipelineStep.PUBLISH, JobPhase.COMPLETED)

    def test_terminal_phases(self) -> None:
        assert JobPhase.COMPLETED.is_terminal
        assert JobPhase.FAILED.is_terminal
        assert not JobPhase.PENDING.is_terminal


@pytest.mark.parametrize(
    ("hour", "bucket"),
    [
        (0, TimingBucket.NIGHT),
        (5, TimingBucket.NIGHT),
        (6, TimingBucket.MORNING),
        (11, TimingBucket.MORNING),
        (12, TimingBucket.AFTERNOON),
        (17, TimingBucket.AFTERNOON),
        (18, TimingBucket.EVENING),
        (22, TimingBucket.EVENING),
        (23, TimingBucket.NIGHT),
    ],
)
def test_timing_bucket_from_hour(hour: int, bucket: TimingBucket) -> None:
    assert TimingBucket.from_hour(hour) == bucket


class TestQuizContent:
    def test_from_dict_keeps_extra_fields(self) -> None:
        content = QuizContent.from_dict(
            {
                "question": " Which word means happy? ",
                "options": {"A": "Glum", "B": "Joyful"},
                "answer": "B",
                "explanation": "Joyful means very happy.",
                "hint": "Think of joy",
            },
            format="mcq",
        )

        assert content.question == "Which word means happy?"
        assert content.extra == {"hint": "Think of joy"}
        assert content.to_dict()["hint"] == "Think of joy"

    @pytest.mark.parametrize(
        "payload",
        [
            {"options": {"A": "x", "B": "y"}, "answer": "A", "explanation": "e"},
            {"question": "q", "options": {"A": "x"}, "answer": "A", "explanation": "e"},
            {"question": "q", "options": {"A": "x", "B": "y"}, "answer": "C", "explanation": "e"},
            {"question": "q", "options": {"A": "x", "B": "y"}, "answer": "A", "explanation": ""},
        ],
    )
    def test_from_dict_rejects_incomplete_payloads(self, payload) -> None:
        with pytest.raises(InvalidContentError):
            QuizContent.from_dict(payload, format="mcq")


class TestPersonaConfig:
    def test_value_for_dimension(self) -> None:
        config = _config(timing_profile="evening")

        assert config.value_for(RefinementDimension.FORMAT) == "mcq"
        assert config.value_for(RefinementDimension.TIMING) == "evening"
        assert config.value_for(RefinementDimension.AUDIO) == "1.mp3"

    def test_timing_dimension_maps_to_profile(self) -> None:
        assert RefinementDimension.TIMING.config_field == "timing_profile"

    def test_to_dict(self) -> None:
        data = _config(version=3, updated_source=ConfigSource.REFINEMENT).to_dict()

        assert data["version"] == 3
        assert data["updated_source"] == "refinement"
        assert data["categories"] == ["eng_vocab_idioms"]
        assert data["last_updated"] is None
