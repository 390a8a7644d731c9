"""Built-in persona catalogue.

Each preset describes a content persona: the quiz categories it may generate
and the initial format, timing profile and audio track used to seed its
``persona_configs`` row. After seeding, the database row is authoritative and
refinement may move the format/timing/audio values away from these defaults.
"""

from dataclasses import dataclass

from quiz_engine.domain.enums import AudioTrack, QuizFormat, TimingBucket


@dataclass(frozen=True)
class QuizCategory:
    """A sub-category a persona can generate quizzes for."""

    key: str
    display_name: str


@dataclass(frozen=True)
class PersonaPreset:
    """Seed configuration for a content persona.

    Attributes:
        name: Unique persona key, used on jobs and analytics records
        display_name: Channel-facing name
        categories: Quiz categories the persona accepts
        format: Default quiz format for step 1
        timing_profile: Daypart in which this persona's videos are published
        audio_track: Default background track for assembly
        hashtags: Tags appended to published video metadata
    """

    name: str
    display_name: str
    categories: tuple[QuizCategory, ...]
    format: QuizFormat = QuizFormat.MCQ
    timing_profile: TimingBucket = TimingBucket.EVENING
    audio_track: AudioTrack = AudioTrack.TRACK_1
    hashtags: tuple[str, ...] = ()

    @property
    def category_keys(self) -> tuple[str, ...]:
        return tuple(c.key for c in self.categories)

    def category_name(self, key: str) -> str:
        """Return the display name of a category, falling back to its key."""
        for category in self.categories:
            if category.key == key:
                return category.display_name
        return key


ENGLISH_VOCAB_BUILDER = PersonaPreset(
    name="english_vocab_builder",
    display_name="Vocabulary Shots",
    categories=(
        QuizCategory("eng_vocab_word_meaning", "What Does This Word Mean?"),
        QuizCategory("eng_vocab_fill_blanks", "Fill in the Blank!"),
        QuizCategory("eng_spelling_bee", "Can You Spell It?"),
        QuizCategory("eng_vocab_word_forms", "Which Word Form Fits?"),
        QuizCategory("eng_vocab_synonyms", "Word Twins (Synonyms)"),
        QuizCategory("eng_vocab_antonyms", "Opposites Attract (Antonyms)"),
        QuizCategory("eng_vocab_shades_of_meaning", "Shades of Meaning"),
        QuizCategory("eng_vocab_confusing_words", "Commonly Confused Words"),
        QuizCategory("eng_vocab_collocations", "Perfect Pairs (Collocations)"),
        QuizCategory("eng_vocab_thematic_words", "Thematic Vocabulary"),
        QuizCategory("eng_vocab_register", "Formal vs. Casual Words"),
        QuizCategory("eng_vocab_phrasal_verbs", "Phrasal Verbs"),
        QuizCategory("eng_vocab_idioms", "Guess the Idiom!"),
        QuizCategory("eng_vocab_prefixes_suffixes", "Prefixes and Suffixes"),
    ),
    format=QuizFormat.MCQ,
    timing_profile=TimingBucket.MORNING,
    audio_track=AudioTrack.TRACK_1,
    hashtags=("#english", "#vocabulary", "#learnenglish", "#shorts"),
)

BRAIN_HEALTH_TIPS = PersonaPreset(
    name="brain_health_tips",
    display_name="Brain Health Tips",
    categories=(
        QuizCategory("memory_techniques", "Memory Enhancement Techniques"),
        QuizCategory("focus_tips", "Focus & Concentration Tips"),
        QuizCategory("brain_food", "Brain-Healthy Foods & Nutrition"),
        QuizCategory("mental_exercises", "Cognitive Exercises & Training"),
        QuizCategory("brain_lifestyle", "Brain-Healthy Lifestyle Habits"),
        QuizCategory("stress_management", "Stress Management for Brain Health"),
        QuizCategory("sleep_brain", "Sleep & Brain Health Connection"),
        QuizCategory("brain_myths", "Brain Health Myths Busted"),
    ),
    format=QuizFormat.QUICK_TIP,
    timing_profile=TimingBucket.EVENING,
    audio_track=AudioTrack.TRACK_2,
    hashtags=("#brainhealth", "#memory", "#wellness", "#shorts"),
)

EYE_HEALTH_TIPS = PersonaPreset(
    name="eye_health_tips",
    display_name="Eye Health Tips",
    categories=(
        QuizCategory("screen_protection", "Screen Time Safety & Blue Light Protection"),
        QuizCategory("eye_exercises", "Eye Exercises & Vision Training"),
        QuizCategory("vision_nutrition", "Vision-Supporting Foods & Nutrients"),
        QuizCategory("eye_care_habits", "Daily Eye Care Routines"),
        QuizCategory("workplace_vision", "Workplace Vision Health"),
        QuizCategory("eye_safety", "Eye Safety & Protection Tips"),
        QuizCategory("vision_myths", "Eye Health Myths & Facts"),
        QuizCategory("eye_fatigue", "Preventing Eye Strain & Fatigue"),
    ),
    format=QuizFormat.TRUE_FALSE,
    timing_profile=TimingBucket.AFTERNOON,
    audio_track=AudioTrack.TRACK_3,
    hashtags=("#eyehealth", "#eyecare", "#wellness", "#shorts"),
)


# Registry of all presets
PRESETS: dict[str, PersonaPreset] = {
    preset.name: preset
    for preset in (
        ENGLISH_VOCAB_BUILDER,
        BRAIN_HEALTH_TIPS,
        EYE_HEALTH_TIPS,
    )
}


def get_preset(name: str) -> PersonaPreset | None:
    """Get a persona preset by name.

    Args:
        name: Persona key (case-insensitive)

    Returns:
        PersonaPreset if found, None otherwise
    """
    return PRESETS.get(name.lower())


def get_preset_names() -> list[str]:
    """Get list of all available persona names."""
    return list(PRESETS.keys())
