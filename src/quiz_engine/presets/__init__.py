"""Persona presets used to seed persona configuration."""

from quiz_engine.presets.personas import (
    PRESETS,
    PersonaPreset,
    QuizCategory,
    get_preset,
    get_preset_names,
)

__all__ = [
    "PRESETS",
    "PersonaPreset",
    "QuizCategory",
    "get_preset",
    "get_preset_names",
]
