"""Persona configuration endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from quiz_engine.api.deps import CronSecretDep, SessionDep
from quiz_engine.api.schemas import DataResponse
from quiz_engine.services.personas import PersonaStore

router = APIRouter(prefix="/personas", tags=["Personas"])


class PersonaOverride(BaseModel):
    """Manual override of persona generation parameters."""

    format: str | None = None
    timing_profile: str | None = None
    audio_track: str | None = None


@router.get("", response_model=DataResponse, summary="List persona configurations")
def list_personas(session: SessionDep) -> DataResponse:
    return DataResponse(data=[c.to_dict() for c in PersonaStore(session).list_configs()])


@router.get("/{persona}", response_model=DataResponse, summary="Get persona configuration")
def get_persona(persona: str, session: SessionDep) -> DataResponse:
    config = PersonaStore(session).get_config(persona)
    return DataResponse(data=config.to_dict())


@router.patch(
    "/{persona}",
    response_model=DataResponse,
    dependencies=[CronSecretDep],
    summary="Override persona configuration",
)
def override_persona(persona: str, body: PersonaOverride, session: SessionDep) -> DataResponse:
    changes: dict[str, Any] = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="No changes")
    try:
        config = PersonaStore(session).set_manual(persona, **changes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return DataResponse(data=config.to_dict())
