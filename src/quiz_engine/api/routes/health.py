"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text

from quiz_engine.config import settings
from quiz_engine.db.session import engine
from quiz_engine.logging import get_logger
from quiz_engine.services.providers import check_collaborators

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, bool] | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response.

    ``adapters`` maps each pipeline role (content, renderer, publisher,
    metrics) to the result of its adapter's own health check.
    """

    ready: bool
    database: bool
    redis: bool
    adapters: dict[str, bool]


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Reports the API version and which roles use a real provider.",
)
async def health_check() -> HealthResponse:
    """Is the API up? ``components`` is True where a role is not on its stub."""
    from quiz_engine import __version__

    providers = {
        "content": settings.content_provider,
        "renderer": settings.renderer_provider,
        "publisher": settings.publisher_provider,
        "metrics": settings.metrics_provider,
    }
    return HealthResponse(
        status="healthy",
        version=__version__,
        components={role: name.lower() != "stub" for role, name in providers.items()},
    )


def _database_ready() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False
    return True


def _redis_ready() -> bool:
    import redis

    try:
        redis.from_url(settings.redis_url).ping()
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return False
    return True


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Pings the job store and broker, then asks every adapter for its health.",
)
async def readiness_check() -> ReadinessResponse:
    """Ready only when the store, the broker and every adapter are healthy."""
    database_ok = _database_ready()
    redis_ok = _redis_ready()
    adapters = await check_collaborators()

    return ReadinessResponse(
        ready=database_ok and redis_ok and all(adapters.values()),
        database=database_ok,
        redis=redis_ok,
        adapters=adapters,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def liveness_check() -> dict[str, str]:
    """The process is alive."""
    return {"status": "alive"}
