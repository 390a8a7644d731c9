"""Durable quiz job store.

Every state transition is a single conditional UPDATE committed on its own, so
a transition either fully happens or leaves the row untouched. Claims use
``FOR UPDATE SKIP LOCKED`` on PostgreSQL; on SQLite the database-level write
lock serializes competing claims and the ``status = 'pending'`` guard keeps
them exclusive.
"""

from collections.abc import Generator, Sequence
from contextlib import AbstractContextManager, contextmanager
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from quiz_engine.config import settings
from quiz_engine.db.models import JobModel
from quiz_engine.domain.enums import Difficulty, JobPhase, PipelineStep
from quiz_engine.domain.models import Job, JobState
from quiz_engine.errors import JobNotFoundError, JobTransitionError, StoreUnavailable
from quiz_engine.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def store_guard(session: Session, operation: str) -> Generator[None, None, None]:
    """Translate database connectivity errors into StoreUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        session.rollback()
        logger.error("store_unavailable", operation=operation, error=str(e))
        raise StoreUnavailable(f"Database unavailable during {operation}") from e


def to_domain(row: JobModel) -> Job:
    """Convert an ORM row into a domain snapshot."""
    return Job(
        id=row.id,
        account_id=row.account_id,
        persona=row.persona,
        category=row.category,
        difficulty=row.difficulty,
        state=JobState(step=PipelineStep(row.step), phase=JobPhase(row.status)),
        retry_count=row.retry_count,
        error_message=row.error_message,
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class JobStore:
    """Persistence and state transitions for quiz pipeline jobs."""

    def __init__(self, session: Session, max_retries: int | None = None) -> None:
        self.session = session
        self.max_retries = settings.max_retries if max_retries is None else max_retries

    def _guard(self, operation: str) -> AbstractContextManager[None]:
        return store_guard(self.session, operation)

    # -------------------------------------------------------------------------
    # Creation and reads
    # -------------------------------------------------------------------------

    def create_job(
        self,
        persona: str,
        category: str,
        difficulty: str | Difficulty,
        account_id: str | None = None,
    ) -> Job:
        """Create a job in ``pending@step1``."""
        now = datetime.now(UTC)
        row = JobModel(
            account_id=account_id or settings.default_account_id,
            persona=persona,
            category=category,
            difficulty=str(Difficulty(difficulty)),
            step=int(PipelineStep.GENERATE),
            status=str(JobPhase.PENDING),
            retry_count=0,
            data={},
            created_at=now,
            updated_at=now,
        )
        with self._guard("create_job"):
            self.session.add(row)
            self.session.commit()

        logger.info(
            "job_created",
            job_id=str(row.id),
            persona=persona,
            category=category,
            difficulty=row.difficulty,
        )
        return to_domain(row)

    def get_job(self, job_id: UUID) -> Job:
        """Fetch one job.

        Raises:
            JobNotFoundError: If no job has this id.
        """
        with self._guard("get_job"):
            row = self.session.get(JobModel, job_id, populate_existing=True)
        if row is None:
            raise JobNotFoundError(f"Job not found: {job_id}")
        return to_domain(row)

    def _load(self, job_ids: Sequence[UUID]) -> list[Job]:
        if not job_ids:
            return []
        rows = self.session.execute(
            select(JobModel)
            .where(JobModel.id.in_(job_ids))
            .order_by(JobModel.created_at, JobModel.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [to_domain(row) for row in rows]

    def get_stats(self) -> dict[str, int]:
        """Count jobs by phase. Read-only."""
        with self._guard("get_stats"):
            rows = self.session.execute(
                select(JobModel.status, func.count()).group_by(JobModel.status)
            ).all()

        stats = {str(phase): 0 for phase in JobPhase}
        for status, count in rows:
            stats[status] = count
        return {"total": sum(stats.values()), **stats}

    def get_step_counts(self) -> dict[str, int]:
        """Count unfinished jobs per ``phase@stepN`` label. Read-only."""
        with self._guard("get_step_counts"):
            rows = self.session.execute(
                select(JobModel.step, JobModel.status, func.count())
                .where(JobModel.status.in_([JobPhase.PENDING, JobPhase.PROCESSING]))
                .group_by(JobModel.step, JobModel.status)
            ).all()
        return {
            JobState(step=PipelineStep(step), phase=JobPhase(status)).label: count
            for step, status, count in rows
        }

    def get_recent_jobs(self, limit: int = 20) -> list[Job]:
        """Most recently created jobs first. Read-only."""
        with self._guard("get_recent_jobs"):
            rows = self.session.execute(
                select(JobModel).order_by(JobModel.created_at.desc(), JobModel.id).limit(limit)
            ).scalars()
            return [to_domain(row) for row in rows]

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def claim_pending_jobs(
        self,
        step: PipelineStep | int,
        limit: int,
        personas: Sequence[str] | None = None,
    ) -> list[Job]:
        """Atomically move up to ``limit`` pending jobs of ``step`` to processing.

        Oldest jobs are claimed first. Concurrent callers never receive the
        same job: the UPDATE only matches rows that are still pending.

        Args:
            step: Pipeline step to claim for
            limit: Maximum number of jobs to claim
            personas: Optional persona whitelist

        Returns:
            The claimed jobs, in processing state.
        """
        step = PipelineStep(step)
        if limit <= 0:
            return []

        candidates = (
            select(JobModel.id)
            .where(JobModel.step == int(step), JobModel.status == JobPhase.PENDING)
            .order_by(JobModel.created_at, JobModel.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        if personas is not None:
            candidates = candidates.where(JobModel.persona.in_(list(personas)))

        stmt = (
            update(JobModel)
            .where(
                JobModel.id.in_(candidates.scalar_subquery()),
                JobModel.step == int(step),
                JobModel.status == JobPhase.PENDING,
            )
            .values(status=str(JobPhase.PROCESSING), updated_at=datetime.now(UTC))
            .returning(JobModel.id)
            .execution_options(synchronize_session=False)
        )

        with self._guard("claim_pending_jobs"):
            claimed_ids = list(self.session.execute(stmt).scalars())
            self.session.commit()
            jobs = self._load(claimed_ids)

        logger.info(
            "jobs_claimed",
            step=int(step),
            requested=limit,
            claimed=len(jobs),
            personas=list(personas) if personas is not None else None,
        )
        return jobs

    def _expect_one(self, matched: int, job_id: UUID, step: PipelineStep, action: str) -> None:
        if matched == 1:
            return
        self.session.rollback()
        raise JobTransitionError(
            f"Cannot {action} job {job_id}: not processing at step {int(step)}"
        )

    def mark_step_success(
        self,
        job_id: UUID,
        step: PipelineStep | int,
        data: dict[str, Any] | None = None,
    ) -> Job:
        """Advance a processing job past ``step``.

        Steps 1-3 move the job to the next step's pending phase; step 4
        completes it. The error message and per-step retry budget are reset and
        ``data`` is merged into the job's artifacts.

        Raises:
            JobTransitionError: If the job is not processing at ``step``.
        """
        step = PipelineStep(step)
        state = JobState(step=step, phase=JobPhase.PROCESSING).after_success()

        with self._guard("mark_step_success"):
            current = self.session.execute(
                select(JobModel.data).where(JobModel.id == job_id)
            ).scalar_one_or_none()
            merged = {**(current or {}), **(data or {})}

            result = self.session.execute(
                update(JobModel)
                .where(
                    JobModel.id == job_id,
                    JobModel.step == int(step),
                    JobModel.status == JobPhase.PROCESSING,
                )
                .values(
                    step=int(state.step),
                    status=str(state.phase),
                    retry_count=0,
                    error_message=None,
                    data=merged,
                    updated_at=datetime.now(UTC),
                )
                .execution_options(synchronize_session=False)
            )
            self._expect_one(result.rowcount, job_id, step, "advance")
            self.session.commit()

        logger.info("job_step_succeeded", job_id=str(job_id), step=int(step), state=state.label)
        return self.get_job(job_id)

    def mark_step_failure(self, job_id: UUID, step: PipelineStep | int, message: str) -> Job:
        """Record a transient failure at ``step``.

        Increments ``retry_count``; once it exceeds ``max_retries`` the job is
        failed, otherwise it returns to pending at the same step.

        Raises:
            JobTransitionError: If the job is not processing at ``step``.
        """
        step = PipelineStep(step)
        next_count = JobModel.retry_count + 1

        with self._guard("mark_step_failure"):
            result = self.session.execute(
                update(JobModel)
                .where(
                    JobModel.id == job_id,
                    JobModel.step == int(step),
                    JobModel.status == JobPhase.PROCESSING,
                )
                .values(
                    retry_count=next_count,
                    status=case(
                        (next_count > self.max_retries, str(JobPhase.FAILED)),
                        else_=str(JobPhase.PENDING),
                    ),
                    error_message=message,
                    updated_at=datetime.now(UTC),
                )
                .execution_options(synchronize_session=False)
            )
            self._expect_one(result.rowcount, job_id, step, "retry")
            self.session.commit()

        job = self.get_job(job_id)
        log = logger.warning if job.phase == JobPhase.FAILED else logger.info
        log(
            "job_step_failed",
            job_id=str(job_id),
            step=int(step),
            retry_count=job.retry_count,
            state=job.state.label,
            error=message,
        )
        return job

    def mark_permanent_failure(self, job_id: UUID, step: PipelineStep | int, message: str) -> Job:
        """Fail a processing job immediately, bypassing the retry budget.

        Raises:
            JobTransitionError: If the job is not processing at ``step``.
        """
        step = PipelineStep(step)

        with self._guard("mark_permanent_failure"):
            result = self.session.execute(
                update(JobModel)
                .where(
                    JobModel.id == job_id,
                    JobModel.step == int(step),
                    JobModel.status == JobPhase.PROCESSING,
                )
                .values(
                    status=str(JobPhase.FAILED),
                    error_message=message,
                    updated_at=datetime.now(UTC),
                )
                .execution_options(synchronize_session=False)
            )
            self._expect_one(result.rowcount, job_id, step, "fail")
            self.session.commit()

        logger.warning("job_failed_permanently", job_id=str(job_id), step=int(step), error=message)
        return self.get_job(job_id)

    # -------------------------------------------------------------------------
    # Operator actions
    # -------------------------------------------------------------------------

    def requeue_stale_jobs(self, older_than_minutes: int | None = None) -> int:
        """Return processing jobs idle longer than the timeout to pending.

        Jobs stay at their current step. Intended for operators after a
        trigger died mid-batch; never called automatically.
        """
        minutes = (
            settings.stale_processing_minutes if older_than_minutes is None else older_than_minutes
        )
        cutoff = datetime.now(UTC) - timedelta(minutes=minutes)

        with self._guard("requeue_stale_jobs"):
            result = self.session.execute(
                update(JobModel)
                .where(JobModel.status == JobPhase.PROCESSING, JobModel.updated_at < cutoff)
                .values(
                    status=str(JobPhase.PENDING),
                    error_message=f"Requeued after {minutes} minutes in processing",
                    updated_at=datetime.now(UTC),
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()

        logger.warning("stale_jobs_requeued", count=result.rowcount, older_than_minutes=minutes)
        return result.rowcount

    def delete_all_jobs(self) -> int:
        """Delete every job. Irreversible.

        Returns:
            Number of jobs deleted.
        """
        with self._guard("delete_all_jobs"):
            result = self.session.execute(
                delete(JobModel).execution_options(synchronize_session=False)
            )
            self.session.commit()

        logger.warning("all_jobs_deleted", count=result.rowcount)
        return result.rowcount

    def count_unfinished(self, persona: str) -> int:
        """Pending or processing jobs for a persona."""
        with self._guard("count_unfinished"):
            return self.session.execute(
                select(func.count())
                .select_from(JobModel)
                .where(
                    JobModel.persona == persona,
                    JobModel.status.in_([JobPhase.PENDING, JobPhase.PROCESSING]),
                )
            ).scalar_one()
