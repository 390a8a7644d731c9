"""Content refinement endpoints."""

from fastapi import APIRouter, Query

from quiz_engine.api.deps import CronSecretDep, SessionDep
from quiz_engine.api.schemas import DataResponse, TriggerResponse
from quiz_engine.logging import get_logger
from quiz_engine.services.refinement import RefinementService

router = APIRouter(prefix="/refinement", tags=["Refinement"])
logger = get_logger(__name__)


@router.post(
    "/trigger",
    response_model=TriggerResponse,
    dependencies=[CronSecretDep],
    summary="Run refinement",
    description="Evaluate analytics, store a report and apply accepted persona changes.",
)
def trigger_refinement(session: SessionDep) -> TriggerResponse:
    outcome = RefinementService(session).perform_content_refinement()
    return TriggerResponse(stats={**outcome["stats"], "applied": outcome["applied"]})


@router.get(
    "/summary",
    response_model=DataResponse,
    summary="Latest refinement report",
    description="Return the most recent stored report without recomputing it.",
)
def get_refinement_summary(session: SessionDep) -> DataResponse:
    return DataResponse(data=RefinementService(session).get_refinement_summary())


@router.get("/reports", response_model=DataResponse, summary="Refinement report history")
def list_reports(
    session: SessionDep, limit: int = Query(default=10, ge=1, le=100)
) -> DataResponse:
    return DataResponse(data=RefinementService(session).list_reports(limit))
