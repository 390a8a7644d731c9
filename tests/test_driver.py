"""Tests for the pipeline driver and step processors."""

from pathlib import Path

import pytest

from quiz_engine.adapters.content.base import ContentGenerator, ContentResult
from quiz_engine.adapters.renderer.stub import StubFrameRenderer
from quiz_engine.config import settings
from quiz_engine.domain.enums import JobPhase, PipelineStep, TimingBucket
from quiz_engine.services.driver import PipelineDriver, run_pipeline_tick
from quiz_engine.services.job_store import JobStore
from quiz_engine.services.personas import PersonaStore
from quiz_engine.services.providers import build_processors


class FailingContentGenerator(ContentGenerator):
    """Content generator that always fails."""

    def __init__(self, retryable: bool = True) -> None:
        self.retryable = retryable
        self.calls = 0

    @property
    def name(self) -> str:
        return "failing"

    async def generate(self, persona, category, difficulty, config) -> ContentResult:
        self.calls += 1
        return ContentResult(success=False, error_message="upstream 500", retryable=self.retryable)


class RecordingContentGenerator(ContentGenerator):
    """Delegates to a wrapped generator and records the configs it saw."""

    def __init__(self, inner: ContentGenerator) -> None:
        self.inner = inner
        self.formats: list[str] = []

    @property
    def name(self) -> str:
        return "recording"

    async def generate(self, persona, category, difficulty, config) -> ContentResult:
        self.formats.append(config.format)
        return await self.inner.generate(persona, category, difficulty, config)


def _create_vocab_jobs(session, n: int) -> list:
    store = JobStore(session)
    return [store.create_job("english_vocab_builder", "eng_vocab_idioms", "easy") for _ in range(n)]


class TestRunStep:
    def test_batch_size_limits_claims(self, seeded_session, processors) -> None:
        _create_vocab_jobs(seeded_session, 3)
        driver = PipelineDriver(
            seeded_session, processors=processors, batch_sizes={PipelineStep.GENERATE: 2}
        )

        result = driver.run_step(PipelineStep.GENERATE)

        assert result.claimed == 2
        assert result.succeeded == 2
        assert JobStore(seeded_session).get_step_counts() == {
            "pending@step1": 1,
            "pending@step2": 2,
        }

        result = driver.run_step(PipelineStep.GENERATE)
        assert result.claimed == 1
        assert JobStore(seeded_session).get_step_counts() == {"pending@step2": 3}

    def test_idle_trigger_is_harmless(self, seeded_session, processors) -> None:
        result = PipelineDriver(seeded_session, processors=processors).run_step(3)

        assert result.claimed == 0
        assert result.to_dict()["job_ids"] == []

    def test_generate_stores_content_and_config_version(self, seeded_session, processors) -> None:
        (job,) = _create_vocab_jobs(seeded_session, 1)

        PipelineDriver(seeded_session, processors=processors).run_step(PipelineStep.GENERATE)

        job = JobStore(seeded_session).get_job(job.id)
        assert job.data["format"] == "mcq"
        assert job.data["config_version"] == 1
        assert job.data["content"]["answer"] in job.data["content"]["options"]

    def test_invalid_category_fails_permanently(self, seeded_session, processors) -> None:
        job = JobStore(seeded_session).create_job("english_vocab_builder", "brain_food", "easy")

        result = PipelineDriver(seeded_session, processors=processors).run_step(1)

        job = JobStore(seeded_session).get_job(job.id)
        assert result.failed == 1
        assert job.phase == JobPhase.FAILED
        assert job.retry_count == 0
        assert "not valid" in job.error_message

    def test_unknown_persona_fails_permanently(self, seeded_session, processors) -> None:
        job = JobStore(seeded_session).create_job("cooking_tips", "knives", "easy")

        PipelineDriver(seeded_session, processors=processors).run_step(1)

        job = JobStore(seeded_session).get_job(job.id)
        assert job.phase == JobPhase.FAILED
        assert "Unknown persona" in job.error_message

    def test_non_retryable_collaborator_error_fails_immediately(
        self, seeded_session, frame_renderer, publisher_adapter
    ) -> None:
        (job,) = _create_vocab_jobs(seeded_session, 1)
        processors = build_processors(
            FailingContentGenerator(retryable=False), frame_renderer, publisher_adapter
        )

        PipelineDriver(seeded_session, processors=processors).run_step(1)

        assert JobStore(seeded_session).get_job(job.id).phase == JobPhase.FAILED

    def test_retryable_collaborator_error_is_retried(
        self, seeded_session, frame_renderer, publisher_adapter
    ) -> None:
        (job,) = _create_vocab_jobs(seeded_session, 1)
        generator = FailingContentGenerator()
        processors = build_processors(generator, frame_renderer, publisher_adapter)
        driver = PipelineDriver(seeded_session, processors=processors, max_retries=2)

        first = driver.run_step(1)
        assert (first.retried, first.failed) == (1, 0)
        assert JobStore(seeded_session).get_job(job.id).state.label == "pending@step1"

        driver.run_step(1)
        last = driver.run_step(1)
        assert last.failed == 1
        assert generator.calls == 3

        job = JobStore(seeded_session).get_job(job.id)
        assert (job.phase, job.retry_count) == (JobPhase.FAILED, 3)

    def test_assembly_timeouts_exhaust_retries(
        self, seeded_session, processors, content_generator, publisher_adapter, tmp_path: Path
    ) -> None:
        (job,) = _create_vocab_jobs(seeded_session, 1)
        fast = PipelineDriver(seeded_session, processors=processors)
        fast.run_step(1)
        fast.run_step(2)

        slow_processors = build_processors(
            content_generator,
            StubFrameRenderer(output_dir=tmp_path / "slow", delay=1.0),
            publisher_adapter,
        )
        slow = PipelineDriver(
            seeded_session, processors=slow_processors, step_timeout=0.05, max_retries=2
        )
        store = JobStore(seeded_session)

        slow.run_step(3)
        assert (store.get_job(job.id).state.label, store.get_job(job.id).retry_count) == (
            "pending@step3",
            1,
        )

        slow.run_step(3)
        assert (store.get_job(job.id).state.label, store.get_job(job.id).retry_count) == (
            "pending@step3",
            2,
        )

        result = slow.run_step(3)
        job = store.get_job(job.id)
        assert result.failed == 1
        assert job.state.label == "failed"
        assert "timed out" in job.error_message

    def test_one_bad_job_does_not_block_the_batch(self, seeded_session, processors) -> None:
        good = _create_vocab_jobs(seeded_session, 2)
        bad = JobStore(seeded_session).create_job("english_vocab_builder", "nope", "easy")

        result = PipelineDriver(seeded_session, processors=processors).run_step(1, limit=5)

        assert (result.claimed, result.succeeded, result.failed) == (3, 2, 1)
        store = JobStore(seeded_session)
        assert all(store.get_job(j.id).state.label == "pending@step2" for j in good)
        assert store.get_job(bad.id).phase == JobPhase.FAILED


class TestPipelineTick:
    def test_tick_advances_at_most_one_step(self, seeded_session, processors) -> None:
        (job,) = _create_vocab_jobs(seeded_session, 1)
        store = JobStore(seeded_session)

        labels = []
        for _ in range(4):
            run_pipeline_tick(seeded_session, processors=processors)
            labels.append(store.get_job(job.id).state.label)

        assert labels == ["pending@step2", "pending@step3", "pending@step4", "completed"]

        job = store.get_job(job.id)
        assert job.data["published_id"].startswith("stub_")
        assert job.data["audio_track"] == "1.mp3"
        assert "published_at" in job.data

    def test_tick_reports_every_step(self, seeded_session, processors) -> None:
        results = run_pipeline_tick(seeded_session, processors=processors)
        assert list(results) == ["publish", "assemble", "render", "generate"]


class TestConfigFeedback:
    def test_generate_reads_latest_committed_config(
        self, seeded_session, content_generator, frame_renderer, publisher_adapter
    ) -> None:
        recorder = RecordingContentGenerator(content_generator)
        processors = build_processors(recorder, frame_renderer, publisher_adapter)
        driver = PipelineDriver(seeded_session, processors=processors)

        _create_vocab_jobs(seeded_session, 1)
        driver.run_step(1)

        PersonaStore(seeded_session).set_manual("english_vocab_builder", format="challenge")
        (job,) = _create_vocab_jobs(seeded_session, 1)
        driver.run_step(1)

        assert recorder.formats == ["mcq", "challenge"]
        assert JobStore(seeded_session).get_job(job.id).data["config_version"] == 2


class TestPublishTimingGate:
    def _job_at_publish(self, session, processors) -> object:
        (job,) = _create_vocab_jobs(session, 1)
        driver = PipelineDriver(session, processors=processors)
        for step in (1, 2, 3):
            driver.run_step(step)
        return job

    def test_gate_skips_personas_outside_their_window(
        self, seeded_session, processors, monkeypatch
    ) -> None:
        job = self._job_at_publish(seeded_session, processors)
        monkeypatch.setattr(settings, "publish_timing_gate", True)
        monkeypatch.setattr(
            "quiz_engine.services.driver.timing_bucket_for", lambda moment: TimingBucket.NIGHT
        )

        result = PipelineDriver(seeded_session, processors=processors).run_step(4)

        assert result.claimed == 0
        assert result.skipped_reason is not None
        assert JobStore(seeded_session).get_job(job.id).state.label == "pending@step4"

    def test_gate_publishes_personas_inside_their_window(
        self, seeded_session, processors, monkeypatch
    ) -> None:
        job = self._job_at_publish(seeded_session, processors)
        monkeypatch.setattr(settings, "publish_timing_gate", True)
        monkeypatch.setattr(
            "quiz_engine.services.driver.timing_bucket_for", lambda moment: TimingBucket.MORNING
        )

        result = PipelineDriver(seeded_session, processors=processors).run_step(4)

        assert result.succeeded == 1
        assert JobStore(seeded_session).get_job(job.id).phase == JobPhase.COMPLETED


@pytest.mark.asyncio
async def test_arun_step_bounds_parallelism(
    seeded_session, content_generator, publisher_adapter, tmp_path: Path
) -> None:
    """Jobs beyond the pool size wait for a free slot but all finish."""
    processors = build_processors(
        content_generator,
        StubFrameRenderer(output_dir=tmp_path / "pool", delay=0.01),
        publisher_adapter,
    )
    _create_vocab_jobs(seeded_session, 3)
    driver = PipelineDriver(seeded_session, processors=processors, worker_pool_size=1)

    await driver.arun_step(1, limit=3)
    result = await driver.arun_step(2, limit=3)

    assert result.succeeded == 3
