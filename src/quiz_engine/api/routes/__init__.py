"""API route modules."""

from quiz_engine.api.routes import (
    admin,
    analytics,
    health,
    jobs,
    personas,
    pipeline,
    refinement,
)

__all__ = ["admin", "analytics", "health", "jobs", "personas", "pipeline", "refinement"]
