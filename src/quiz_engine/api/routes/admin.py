"""Privileged maintenance endpoints."""

from fastapi import APIRouter, Query

from quiz_engine.api.deps import CronSecretDep, SessionDep
from quiz_engine.api.schemas import TriggerResponse
from quiz_engine.logging import get_logger
from quiz_engine.services.job_store import JobStore
from quiz_engine.services.personas import PersonaStore

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[CronSecretDep])
logger = get_logger(__name__)


@router.post(
    "/cleanup",
    response_model=TriggerResponse,
    summary="Delete all jobs",
    description="Irreversibly delete every job. Analytics and reports are kept.",
)
def cleanup_jobs(session: SessionDep) -> TriggerResponse:
    deleted = JobStore(session).delete_all_jobs()
    logger.warning("cleanup_requested", deleted=deleted)
    return TriggerResponse(stats={"deleted": deleted})


@router.post(
    "/jobs/requeue-stale",
    response_model=TriggerResponse,
    summary="Requeue stale jobs",
    description="Return jobs stuck in processing longer than the timeout to pending.",
)
def requeue_stale_jobs(
    session: SessionDep,
    older_than_minutes: int | None = Query(default=None, ge=1),
) -> TriggerResponse:
    requeued = JobStore(session).requeue_stale_jobs(older_than_minutes)
    return TriggerResponse(stats={"requeued": requeued})


@router.post("/personas/seed", response_model=TriggerResponse, summary="Seed personas")
def seed_personas(session: SessionDep) -> TriggerResponse:
    created = PersonaStore(session).seed_defaults()
    return TriggerResponse(stats={"created": created})
