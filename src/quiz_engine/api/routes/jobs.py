"""Job management endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from quiz_engine.api.deps import CronSecretDep, SessionDep
from quiz_engine.api.schemas import DataResponse, TriggerResponse, utc_timestamp
from quiz_engine.domain.enums import Difficulty
from quiz_engine.logging import get_logger
from quiz_engine.services.job_store import JobStore
from quiz_engine.services.personas import PersonaStore

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = get_logger(__name__)


class CreateJobRequest(BaseModel):
    """Request to enqueue a quiz job at step 1."""

    persona: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    difficulty: Difficulty = Difficulty.MEDIUM
    account_id: str | None = Field(None, max_length=100)
    count: int = Field(default=1, ge=1, le=50)


class JobStatsResponse(BaseModel):
    """Job counts by phase and by unfinished step."""

    stats: dict[str, int]
    steps: dict[str, int]
    timestamp: str


@router.get(
    "/stats",
    response_model=JobStatsResponse,
    summary="Job statistics",
    description="Count jobs by phase and unfinished jobs by step. Read-only.",
)
def get_job_stats(session: SessionDep) -> dict[str, Any]:
    """Counts by phase plus a per-step breakdown of pending/processing jobs."""
    store = JobStore(session)
    return {
        "stats": store.get_stats(),
        "steps": store.get_step_counts(),
        "timestamp": utc_timestamp(),
    }


@router.get(
    "/recent",
    response_model=DataResponse,
    summary="Recent jobs",
)
def get_recent_jobs(
    session: SessionDep,
    limit: int = Query(default=20, ge=1, le=200),
) -> DataResponse:
    """Most recently created jobs first."""
    jobs = JobStore(session).get_recent_jobs(limit)
    return DataResponse(data=[job.to_dict() for job in jobs])


@router.get(
    "/{job_id}",
    response_model=DataResponse,
    summary="Get job",
)
def get_job(job_id: UUID, session: SessionDep) -> DataResponse:
    """Fetch one job with its artifacts."""
    job = JobStore(session).get_job(job_id)
    return DataResponse(data={**job.to_dict(), "data": job.data})


@router.post(
    "",
    response_model=TriggerResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[CronSecretDep],
    summary="Create jobs",
    description="Create one or more jobs in pending@step1 for a persona and category.",
)
def create_jobs(request: CreateJobRequest, session: SessionDep) -> TriggerResponse:
    """Create ``count`` jobs for the same persona, category and difficulty."""
    config = PersonaStore(session).get_config(request.persona)
    if request.category not in config.categories:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Category {request.category} is not valid for persona {request.persona}",
        )

    store = JobStore(session)
    created = [
        store.create_job(
            request.persona, request.category, request.difficulty, request.account_id
        )
        for _ in range(request.count)
    ]
    logger.info("jobs_created_via_api", persona=request.persona, count=len(created))
    return TriggerResponse(stats={"created": len(created), "job_ids": [str(j.id) for j in created]})
