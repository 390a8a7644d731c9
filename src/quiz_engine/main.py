"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quiz_engine import __version__
from quiz_engine.api.routes import admin, analytics, health, jobs, personas, pipeline, refinement
from quiz_engine.api.schemas import ErrorResponse
from quiz_engine.config import settings
from quiz_engine.errors import (
    ConcurrentUpdateError,
    JobNotFoundError,
    PersonaInUseError,
    PersonaNotFoundError,
    QuizEngineError,
    StoreUnavailable,
    UnauthorizedError,
)
from quiz_engine.logging import get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)

_ERROR_STATUS: list[tuple[type[QuizEngineError], int]] = [
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (JobNotFoundError, status.HTTP_404_NOT_FOUND),
    (PersonaNotFoundError, status.HTTP_404_NOT_FOUND),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
    (PersonaInUseError, status.HTTP_409_CONFLICT),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    # Startup: verify database connection
    try:
        from quiz_engine.db.session import init_db

        init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Quiz Shorts Engine",
    description="Quiz video pipeline with analytics-driven persona refinement",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuizEngineError)
async def quiz_engine_error_handler(request: Request, exc: QuizEngineError) -> JSONResponse:
    """Render service errors as ``{success: false, error, timestamp}``."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=str(exc))
    else:
        logger.warning("request_rejected", path=request.url.path, error=str(exc))

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


# Register routers
app.include_router(health.router)
app.include_router(jobs.router, prefix="/api/v1")
app.include_router(pipeline.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(refinement.router, prefix="/api/v1")
app.include_router(personas.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "Quiz Shorts Engine",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quiz_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
