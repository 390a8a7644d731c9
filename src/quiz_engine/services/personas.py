"""Persona configuration store.

Rows are versioned: every committed change bumps ``version`` and writers must
name the version they read. Readers never lock; they see the latest committed
row.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from quiz_engine.db.models import PersonaConfigModel
from quiz_engine.domain.enums import (
    AudioTrack,
    ConfigSource,
    QuizFormat,
    TimingBucket,
)
from quiz_engine.domain.models import PersonaConfig
from quiz_engine.errors import ConcurrentUpdateError, PersonaInUseError, PersonaNotFoundError
from quiz_engine.logging import get_logger
from quiz_engine.presets import PRESETS, PersonaPreset
from quiz_engine.services.job_store import JobStore, store_guard

logger = get_logger(__name__)

# Fields that manual overrides and refinement may change
MUTABLE_FIELDS = ("format", "timing_profile", "audio_track", "categories", "display_name")

_VALIDATORS: dict[str, type] = {
    "format": QuizFormat,
    "timing_profile": TimingBucket,
    "audio_track": AudioTrack,
}


def to_domain(row: PersonaConfigModel) -> PersonaConfig:
    """Convert an ORM row into an immutable config snapshot."""
    return PersonaConfig(
        persona=row.persona,
        display_name=row.display_name,
        categories=tuple(row.categories or ()),
        format=row.format,
        timing_profile=row.timing_profile,
        audio_track=row.audio_track,
        version=row.version,
        updated_source=ConfigSource(row.updated_source),
        last_updated=row.last_updated,
    )


def _validate_changes(changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - set(MUTABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown persona fields: {', '.join(sorted(unknown))}")

    cleaned: dict[str, Any] = {}
    for key, value in changes.items():
        enum_type = _VALIDATORS.get(key)
        if enum_type is not None:
            cleaned[key] = str(enum_type(value))
        elif key == "categories":
            cleaned[key] = list(value)
        else:
            cleaned[key] = value
    return cleaned


class PersonaStore:
    """Reads and conditionally updates persona configuration."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def seed_defaults(self, presets: dict[str, PersonaPreset] | None = None) -> int:
        """Insert a config row for every preset that has none yet.

        Existing rows are left alone so refinement results survive re-seeding.

        Returns:
            Number of personas created.
        """
        presets = PRESETS if presets is None else presets
        created = 0
        with store_guard(self.session, "seed_persona_configs"):
            existing = set(self.session.execute(select(PersonaConfigModel.persona)).scalars())
            for name, preset in sorted(presets.items()):
                if name in existing:
                    continue
                self.session.add(
                    PersonaConfigModel(
                        persona=name,
                        display_name=preset.display_name,
                        categories=list(preset.category_keys),
                        format=str(preset.format),
                        timing_profile=str(preset.timing_profile),
                        audio_track=str(preset.audio_track),
                        version=1,
                        updated_source=str(ConfigSource.SEED),
                        last_updated=datetime.now(UTC),
                    )
                )
                created += 1
            self.session.commit()

        if created:
            logger.info("personas_seeded", created=created)
        return created

    def get_config(self, persona: str) -> PersonaConfig:
        """Latest committed configuration for a persona.

        Raises:
            PersonaNotFoundError: If the persona has no configuration.
        """
        with store_guard(self.session, "get_persona_config"):
            row = self.session.get(PersonaConfigModel, persona, populate_existing=True)
        if row is None:
            raise PersonaNotFoundError(f"Unknown persona: {persona}")
        return to_domain(row)

    def list_configs(self) -> list[PersonaConfig]:
        """All persona configurations, ordered by persona name."""
        with store_guard(self.session, "list_persona_configs"):
            rows = self.session.execute(
                select(PersonaConfigModel)
                .order_by(PersonaConfigModel.persona)
                .execution_options(populate_existing=True)
            ).scalars()
            return [to_domain(row) for row in rows]

    def update_config(
        self,
        persona: str,
        changes: dict[str, Any],
        expected_version: int,
        source: ConfigSource = ConfigSource.MANUAL,
    ) -> PersonaConfig:
        """Apply ``changes`` if the row is still at ``expected_version``.

        Raises:
            PersonaNotFoundError: If the persona has no configuration.
            ConcurrentUpdateError: If another writer committed first.
            ValueError: If a field or value is not allowed.
        """
        cleaned = _validate_changes(changes)
        with store_guard(self.session, "update_persona_config"):
            result = self.session.execute(
                update(PersonaConfigModel)
                .where(
                    PersonaConfigModel.persona == persona,
                    PersonaConfigModel.version == expected_version,
                )
                .values(
                    **cleaned,
                    version=PersonaConfigModel.version + 1,
                    updated_source=str(source),
                    last_updated=datetime.now(UTC),
                )
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                self.session.rollback()
                # Distinguish a missing persona from a lost race
                self.get_config(persona)
                raise ConcurrentUpdateError(
                    f"Persona {persona} changed since version {expected_version}"
                )

            self.session.commit()

        config = self.get_config(persona)
        logger.info(
            "persona_config_updated",
            persona=persona,
            changes=cleaned,
            version=config.version,
            source=str(source),
        )
        return config

    def set_manual(self, persona: str, **changes: Any) -> PersonaConfig:
        """Manual override against the currently committed version."""
        current = self.get_config(persona)
        return self.update_config(persona, changes, current.version, ConfigSource.MANUAL)

    def delete_persona(self, persona: str) -> None:
        """Delete a persona configuration.

        Raises:
            PersonaNotFoundError: If the persona has no configuration.
            PersonaInUseError: If pending or processing jobs still reference it.
        """
        self.get_config(persona)
        in_flight = JobStore(self.session).count_unfinished(persona)
        if in_flight:
            raise PersonaInUseError(f"Persona {persona} has {in_flight} unfinished jobs")

        with store_guard(self.session, "delete_persona_config"):
            self.session.execute(
                delete(PersonaConfigModel).where(PersonaConfigModel.persona == persona)
            )
            self.session.commit()
        logger.warning("persona_deleted", persona=persona)
