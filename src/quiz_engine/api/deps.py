"""FastAPI dependencies."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from quiz_engine.config import settings
from quiz_engine.db.session import get_session
from quiz_engine.errors import UnauthorizedError

# Database session dependency
SessionDep = Annotated[Session, Depends(get_session)]


def check_cron_secret(provided: str | None, expected: str | None) -> None:
    """Validate a shared secret.

    Raises:
        UnauthorizedError: If no secret is configured or ``provided`` does not match.
    """
    if not expected:
        raise UnauthorizedError("CRON_SECRET is not configured")
    if not provided or not secrets.compare_digest(provided, expected):
        raise UnauthorizedError("Invalid or missing secret")


def verify_cron_secret(
    authorization: Annotated[str | None, Header()] = None,
    secret: Annotated[str | None, Query()] = None,
) -> None:
    """Gate privileged endpoints on ``Authorization: Bearer <secret>`` or ``?secret=``."""
    token = secret
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    check_cron_secret(token, settings.cron_secret)


CronSecretDep = Depends(verify_cron_secret)
