"""Database layer."""

from quiz_engine.db.models import (
    AnalyticsRecordModel,
    Base,
    JobModel,
    PersonaConfigModel,
    RefinementReportModel,
)
from quiz_engine.db.session import get_session, get_session_context, init_db

__all__ = [
    "Base",
    "get_session",
    "get_session_context",
    "init_db",
    # Models
    "AnalyticsRecordModel",
    "JobModel",
    "PersonaConfigModel",
    "RefinementReportModel",
]
