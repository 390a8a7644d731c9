"""Pipeline driver: one bounded unit of work per trigger.

Each call to ``run_step`` claims a batch for one step, runs the step's
processor on every claimed job with bounded parallelism and a per-job time
budget, then persists exactly one transition per job. Nothing survives between
calls except database state, so overlapping or skipped triggers are harmless.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from quiz_engine.config import settings
from quiz_engine.domain.enums import JobPhase, PipelineStep
from quiz_engine.domain.models import Job, PersonaConfig
from quiz_engine.errors import JobTransitionError
from quiz_engine.logging import get_logger
from quiz_engine.services.analytics import timing_bucket_for
from quiz_engine.services.job_store import JobStore
from quiz_engine.services.personas import PersonaStore
from quiz_engine.services.providers import build_processors
from quiz_engine.services.steps import (
    PermanentFailure,
    StepContext,
    StepOutcome,
    StepProcessor,
    Success,
    TransientFailure,
)
from quiz_engine.utils import run_async

logger = get_logger(__name__)


def default_batch_sizes() -> dict[PipelineStep, int]:
    return {
        PipelineStep.GENERATE: settings.generate_batch_size,
        PipelineStep.RENDER: settings.frames_batch_size,
        PipelineStep.ASSEMBLE: settings.assembly_batch_size,
        PipelineStep.PUBLISH: settings.upload_batch_size,
    }


@dataclass
class StepRunResult:
    """Counts for one trigger invocation."""

    step: int
    claimed: int = 0
    succeeded: int = 0
    retried: int = 0
    failed: int = 0
    job_ids: list[str] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    skipped_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "claimed": self.claimed,
            "succeeded": self.succeeded,
            "retried": self.retried,
            "failed": self.failed,
            "job_ids": self.job_ids,
            "errors": self.errors,
            "skipped_reason": self.skipped_reason,
        }


class PipelineDriver:
    """Claims, dispatches and resolves jobs for a single pipeline step."""

    def __init__(
        self,
        session: Session,
        processors: dict[PipelineStep, StepProcessor] | None = None,
        batch_sizes: dict[PipelineStep, int] | None = None,
        worker_pool_size: int | None = None,
        step_timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.session = session
        self.store = JobStore(session, max_retries=max_retries)
        self.personas = PersonaStore(session)
        self.processors = processors or build_processors()
        self.batch_sizes = {**default_batch_sizes(), **(batch_sizes or {})}
        self.worker_pool_size = worker_pool_size or settings.worker_pool_size
        self.step_timeout = step_timeout or settings.step_timeout_seconds

    def run_step(
        self,
        step: PipelineStep | int,
        limit: int | None = None,
        personas: Sequence[str] | None = None,
    ) -> StepRunResult:
        """Process one batch for ``step`` from synchronous code (Celery, CLI, API)."""
        return run_async(self.arun_step(step, limit=limit, personas=personas))

    async def arun_step(
        self,
        step: PipelineStep | int,
        limit: int | None = None,
        personas: Sequence[str] | None = None,
    ) -> StepRunResult:
        """Claim up to ``limit`` jobs for ``step`` and resolve every one of them.

        Raises:
            StoreUnavailable: If the database fails mid-run. Jobs already
                claimed but not yet resolved stay in processing until an
                operator requeues them.
        """
        step = PipelineStep(step)
        processor = self.processors[step]
        limit = self.batch_sizes[step] if limit is None else limit
        result = StepRunResult(step=int(step))

        if personas is None and step == PipelineStep.PUBLISH and settings.publish_timing_gate:
            personas = self._personas_in_publish_window()
            if not personas:
                result.skipped_reason = "no personas scheduled for the current time window"
                logger.info("publish_window_empty", step=int(step))
                return result

        jobs = self.store.claim_pending_jobs(step, limit, personas=personas)
        result.claimed = len(jobs)
        result.job_ids = [str(job.id) for job in jobs]
        if not jobs:
            logger.info("step_run_idle", step=int(step))
            return result

        configs = self._load_configs(jobs)
        outcomes = await self._execute(processor, jobs, configs)

        for job, outcome in zip(jobs, outcomes, strict=True):
            self._resolve(job, outcome, result)

        logger.info(
            "step_run_completed",
            step=int(step),
            claimed=result.claimed,
            succeeded=result.succeeded,
            retried=result.retried,
            failed=result.failed,
        )
        return result

    def _personas_in_publish_window(self) -> list[str]:
        bucket = str(timing_bucket_for(datetime.now(UTC)))
        return [c.persona for c in self.personas.list_configs() if c.timing_profile == bucket]

    def _load_configs(self, jobs: Sequence[Job]) -> dict[str, PersonaConfig]:
        wanted = {job.persona for job in jobs}
        return {c.persona: c for c in self.personas.list_configs() if c.persona in wanted}

    async def _execute(
        self,
        processor: StepProcessor,
        jobs: Sequence[Job],
        configs: dict[str, PersonaConfig],
    ) -> list[StepOutcome]:
        semaphore = asyncio.Semaphore(self.worker_pool_size)

        async def run_one(job: Job) -> StepOutcome:
            async with semaphore:
                ctx = StepContext(job=job, persona_config=configs.get(job.persona))
                try:
                    return await asyncio.wait_for(processor.run(ctx), timeout=self.step_timeout)
                except TimeoutError:
                    logger.warning(
                        "step_timed_out",
                        job_id=str(job.id),
                        step=int(job.step),
                        timeout=self.step_timeout,
                    )
                    return TransientFailure(
                        f"Step {int(job.step)} timed out after {self.step_timeout}s"
                    )
                except Exception as e:
                    logger.exception(
                        "step_processor_error", job_id=str(job.id), step=int(job.step)
                    )
                    return TransientFailure(f"{type(e).__name__}: {e}")

        return list(await asyncio.gather(*(run_one(job) for job in jobs)))

    def _resolve(self, job: Job, outcome: StepOutcome, result: StepRunResult) -> None:
        try:
            if isinstance(outcome, Success):
                self.store.mark_step_success(job.id, job.step, outcome.artifacts)
                result.succeeded += 1
            elif isinstance(outcome, TransientFailure):
                updated = self.store.mark_step_failure(job.id, job.step, outcome.message)
                if updated.phase == JobPhase.FAILED:
                    result.failed += 1
                else:
                    result.retried += 1
                result.errors.append({"job_id": str(job.id), "error": outcome.message})
            elif isinstance(outcome, PermanentFailure):
                self.store.mark_permanent_failure(job.id, job.step, outcome.message)
                result.failed += 1
                result.errors.append({"job_id": str(job.id), "error": outcome.message})
            else:
                raise TypeError(f"Unknown step outcome: {outcome!r}")
        except JobTransitionError as e:
            # Requeued or deleted by an operator while the processor ran
            logger.warning("job_transition_skipped", job_id=str(job.id), error=str(e))
            result.errors.append({"job_id": str(job.id), "error": str(e)})


def run_pipeline_tick(session: Session, **driver_kwargs: Any) -> dict[str, dict[str, Any]]:
    """Run one batch of every step, last step first.

    Reverse order keeps a single tick from carrying a job through several
    steps, so each step's batch size bounds the tick's work.
    """
    driver = PipelineDriver(session, **driver_kwargs)
    results = {}
    for step in sorted(PipelineStep, reverse=True):
        results[step.label] = driver.run_step(step).to_dict()
    return results
