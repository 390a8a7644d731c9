"""Celery task definitions for the quiz pipeline, analytics and refinement.

Every task is one bounded unit of work: it opens a session, runs a single
service call and reports ``{success, stats, timestamp}``. Store outages abort
the task with ``success: False`` and leave every job where it was.
"""

from datetime import UTC, datetime
from typing import Any

from quiz_engine.db.session import get_session_context
from quiz_engine.errors import StoreUnavailable
from quiz_engine.logging import get_logger
from quiz_engine.services.analytics import AnalyticsService
from quiz_engine.services.driver import PipelineDriver, run_pipeline_tick
from quiz_engine.services.refinement import RefinementService
from quiz_engine.worker import celery_app

logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _failure(error: Exception) -> dict[str, Any]:
    return {"success": False, "error": str(error), "timestamp": _now()}


@celery_app.task(bind=True, name="pipeline.run_step")
def run_step_task(
    self: Any,
    step: int,
    limit: int | None = None,
    personas: list[str] | None = None,
) -> dict[str, Any]:
    """Claim and process one batch for a pipeline step.

    Args:
        step: Pipeline step number (1-4).
        limit: Override for the step's configured batch size.
        personas: Restrict the claim to these personas.
    """
    task_id = self.request.id
    logger.info("run_step_task_started", task_id=task_id, step=step)

    try:
        with get_session_context() as session:
            result = PipelineDriver(session).run_step(step, limit=limit, personas=personas)
    except StoreUnavailable as e:
        logger.error("run_step_task_store_unavailable", task_id=task_id, step=step, error=str(e))
        return _failure(e)

    return {"success": True, "stats": result.to_dict(), "timestamp": _now()}


@celery_app.task(bind=True, name="pipeline.tick")
def pipeline_tick_task(self: Any) -> dict[str, Any]:
    """Run one batch of every step."""
    task_id = self.request.id
    logger.info("pipeline_tick_task_started", task_id=task_id)

    try:
        with get_session_context() as session:
            stats = run_pipeline_tick(session)
    except StoreUnavailable as e:
        logger.error("pipeline_tick_task_store_unavailable", task_id=task_id, error=str(e))
        return _failure(e)

    return {"success": True, "stats": stats, "timestamp": _now()}


@celery_app.task(bind=True, name="analytics.collect")
def collect_analytics_task(
    self: Any,
    account_id: str | None = None,
    persona: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Fetch metrics for published videos that have not been collected yet."""
    task_id = self.request.id
    logger.info("collect_analytics_task_started", task_id=task_id, account_id=account_id)

    try:
        with get_session_context() as session:
            stats = AnalyticsService(session).collect(account_id, persona, limit)
    except StoreUnavailable as e:
        logger.error("collect_analytics_task_store_unavailable", task_id=task_id, error=str(e))
        return _failure(e)

    return {"success": True, "stats": stats, "timestamp": _now()}


@celery_app.task(bind=True, name="analytics.refresh")
def refresh_analytics_task(
    self: Any,
    account_id: str | None = None,
    persona: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Append fresh snapshots for videos that already have metrics."""
    task_id = self.request.id
    logger.info("refresh_analytics_task_started", task_id=task_id, account_id=account_id)

    try:
        with get_session_context() as session:
            stats = AnalyticsService(session).refresh(account_id, persona, limit)
    except StoreUnavailable as e:
        logger.error("refresh_analytics_task_store_unavailable", task_id=task_id, error=str(e))
        return _failure(e)

    return {"success": True, "stats": stats, "timestamp": _now()}


@celery_app.task(bind=True, name="refinement.run")
def run_refinement_task(self: Any) -> dict[str, Any]:
    """Evaluate analytics and apply accepted persona configuration changes."""
    task_id = self.request.id
    logger.info("refinement_task_started", task_id=task_id)

    try:
        with get_session_context() as session:
            outcome = RefinementService(session).perform_content_refinement()
    except StoreUnavailable as e:
        logger.error("refinement_task_store_unavailable", task_id=task_id, error=str(e))
        return _failure(e)

    return {
        "success": True,
        "stats": outcome["stats"],
        "applied": outcome["applied"],
        "timestamp": _now(),
    }
