"""Pipeline step triggers.

Each call processes one bounded batch synchronously and returns its counts.
Routes are plain ``def`` so FastAPI runs them in its threadpool, where the
driver can start its own event loop.
"""

from fastapi import APIRouter, Path, Query

from quiz_engine.api.deps import CronSecretDep, SessionDep
from quiz_engine.api.schemas import TriggerResponse
from quiz_engine.logging import get_logger
from quiz_engine.services.driver import PipelineDriver, run_pipeline_tick

router = APIRouter(prefix="/pipeline", tags=["Pipeline"], dependencies=[CronSecretDep])
logger = get_logger(__name__)


@router.post(
    "/steps/{step}/trigger",
    response_model=TriggerResponse,
    summary="Trigger a pipeline step",
    description="Claim and process one batch of pending jobs for a step (1-4).",
)
def trigger_step(
    session: SessionDep,
    step: int = Path(..., ge=1, le=4),
    limit: int | None = Query(default=None, ge=1, le=100),
    persona: list[str] | None = Query(default=None),
) -> TriggerResponse:
    """Run one batch of ``step``."""
    logger.info("step_triggered", step=step, limit=limit)
    result = PipelineDriver(session).run_step(step, limit=limit, personas=persona)
    return TriggerResponse(stats=result.to_dict())


@router.post(
    "/tick",
    response_model=TriggerResponse,
    summary="Run every step once",
)
def trigger_tick(session: SessionDep) -> TriggerResponse:
    """Run one batch of every step, last step first."""
    logger.info("tick_triggered")
    return TriggerResponse(stats=run_pipeline_tick(session))
