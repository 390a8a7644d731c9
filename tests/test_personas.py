"""Tests for persona configuration storage."""

import pytest
from sqlalchemy.exc import OperationalError

from quiz_engine.domain.enums import ConfigSource
from quiz_engine.errors import (
    ConcurrentUpdateError,
    PersonaInUseError,
    PersonaNotFoundError,
    StoreUnavailable,
)
from quiz_engine.presets import PRESETS
from quiz_engine.services.job_store import JobStore
from quiz_engine.services.personas import PersonaStore


def test_seed_creates_one_row_per_preset(db_session) -> None:
    store = PersonaStore(db_session)

    assert store.seed_defaults() == len(PRESETS)
    configs = store.list_configs()
    assert [c.persona for c in configs] == sorted(PRESETS)
    assert all(c.version == 1 and c.updated_source == ConfigSource.SEED for c in configs)


def test_reseeding_keeps_existing_rows(seeded_session) -> None:
    store = PersonaStore(seeded_session)
    store.set_manual("eye_health_tips", format="challenge")

    assert store.seed_defaults() == 0
    config = store.get_config("eye_health_tips")
    assert (config.format, config.version) == ("challenge", 2)


def test_get_config_unknown_persona(seeded_session) -> None:
    with pytest.raises(PersonaNotFoundError):
        PersonaStore(seeded_session).get_config("cooking_tips")


def test_update_bumps_version_and_source(seeded_session) -> None:
    store = PersonaStore(seeded_session)

    config = store.update_config(
        "brain_health_tips", {"audio_track": "3.mp3"}, 1, ConfigSource.REFINEMENT
    )

    assert config.audio_track == "3.mp3"
    assert config.version == 2
    assert config.updated_source == ConfigSource.REFINEMENT
    assert config.last_updated is not None


def test_update_with_stale_version_conflicts(seeded_session) -> None:
    store = PersonaStore(seeded_session)
    store.update_config("brain_health_tips", {"format": "mcq"}, 1)

    with pytest.raises(ConcurrentUpdateError):
        store.update_config("brain_health_tips", {"format": "challenge"}, 1)

    config = store.get_config("brain_health_tips")
    assert (config.format, config.version) == ("mcq", 2)


def test_update_unknown_persona(seeded_session) -> None:
    with pytest.raises(PersonaNotFoundError):
        PersonaStore(seeded_session).update_config("cooking_tips", {"format": "mcq"}, 1)


@pytest.mark.parametrize(
    "changes",
    [
        {"format": "karaoke"},
        {"timing_profile": "midnight"},
        {"audio_track": "9.mp3"},
        {"version": 10},
    ],
)
def test_update_rejects_invalid_changes(seeded_session, changes) -> None:
    store = PersonaStore(seeded_session)

    with pytest.raises(ValueError):
        store.update_config("eye_health_tips", changes, 1)

    assert store.get_config("eye_health_tips").version == 1


def test_set_manual_uses_current_version(seeded_session) -> None:
    store = PersonaStore(seeded_session)
    store.set_manual("english_vocab_builder", format="challenge")

    config = store.set_manual("english_vocab_builder", timing_profile="evening")

    assert config.version == 3
    assert (config.format, config.timing_profile) == ("challenge", "evening")
    assert config.updated_source == ConfigSource.MANUAL


class TestDelete:
    def test_delete_idle_persona(self, seeded_session) -> None:
        store = PersonaStore(seeded_session)
        store.delete_persona("eye_health_tips")

        with pytest.raises(PersonaNotFoundError):
            store.get_config("eye_health_tips")

    def test_delete_refused_while_jobs_in_flight(self, seeded_session) -> None:
        JobStore(seeded_session).create_job("eye_health_tips", "eye_fatigue", "easy")

        with pytest.raises(PersonaInUseError):
            PersonaStore(seeded_session).delete_persona("eye_health_tips")

        assert PersonaStore(seeded_session).get_config("eye_health_tips").version == 1


class TestStoreOutage:
    @staticmethod
    def _outage() -> OperationalError:
        return OperationalError("SELECT 1", {}, Exception("connection refused"))

    def test_seed_surfaces_store_unavailable(self, db_session, monkeypatch) -> None:
        def broken(*args, **kwargs):
            raise self._outage()

        monkeypatch.setattr(db_session, "execute", broken)

        with pytest.raises(StoreUnavailable):
            PersonaStore(db_session).seed_defaults()

    def test_delete_surfaces_store_unavailable(self, seeded_session, monkeypatch) -> None:
        execute = seeded_session.execute

        def fail_deletes(statement, *args, **kwargs):
            if getattr(statement, "is_delete", False):
                raise self._outage()
            return execute(statement, *args, **kwargs)

        monkeypatch.setattr(seeded_session, "execute", fail_deletes)

        with pytest.raises(StoreUnavailable):
            PersonaStore(seeded_session).delete_persona("eye_health_tips")
