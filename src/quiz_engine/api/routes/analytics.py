"""Analytics collection and performance breakdowns."""

from fastapi import APIRouter, Query

from quiz_engine.api.deps import CronSecretDep, SessionDep
from quiz_engine.api.schemas import DataResponse, TriggerResponse
from quiz_engine.logging import get_logger
from quiz_engine.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])
logger = get_logger(__name__)


@router.post(
    "/collect",
    response_model=TriggerResponse,
    dependencies=[CronSecretDep],
    summary="Collect metrics",
    description="Fetch metrics for published videos that have none recorded yet.",
)
def collect_analytics(
    session: SessionDep,
    account_id: str | None = None,
    persona: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> TriggerResponse:
    """Append one snapshot per uncollected published video."""
    stats = AnalyticsService(session).collect(account_id, persona, limit)
    return TriggerResponse(stats=stats)


@router.post(
    "/refresh",
    response_model=TriggerResponse,
    dependencies=[CronSecretDep],
    summary="Refresh metrics",
)
def refresh_analytics(
    session: SessionDep,
    account_id: str | None = None,
    persona: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> TriggerResponse:
    """Append a newer snapshot for videos that already have one."""
    stats = AnalyticsService(session).refresh(account_id, persona, limit)
    return TriggerResponse(stats=stats)


@router.get("/summary", response_model=DataResponse, summary="Analytics summary")
def get_summary(
    session: SessionDep, account_id: str | None = None, persona: str | None = None
) -> DataResponse:
    return DataResponse(data=AnalyticsService(session).get_analytics_summary(account_id, persona))


@router.get("/format", response_model=DataResponse, summary="Performance by quiz format")
def get_format(
    session: SessionDep, account_id: str | None = None, persona: str | None = None
) -> DataResponse:
    return DataResponse(data=AnalyticsService(session).get_format_analytics(account_id, persona))


@router.get("/timing", response_model=DataResponse, summary="Performance by upload daypart")
def get_timing(
    session: SessionDep, account_id: str | None = None, persona: str | None = None
) -> DataResponse:
    return DataResponse(data=AnalyticsService(session).get_timing_analytics(account_id, persona))


@router.get("/audio", response_model=DataResponse, summary="Performance by audio track")
def get_audio(
    session: SessionDep, account_id: str | None = None, persona: str | None = None
) -> DataResponse:
    return DataResponse(data=AnalyticsService(session).get_audio_analytics(account_id, persona))


@router.get("/category", response_model=DataResponse, summary="Performance by quiz category")
def get_category(
    session: SessionDep, account_id: str | None = None, persona: str | None = None
) -> DataResponse:
    return DataResponse(data=AnalyticsService(session).get_category_analytics(account_id, persona))
