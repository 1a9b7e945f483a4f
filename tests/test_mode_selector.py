"""Tests for otie/think/mode_selector.py: the persona cascade, rule by rule."""

from __future__ import annotations

import itertools

import pytest

from otie.think.mode_selector import ModeSelector
from otie.utils.mappings import Mode


@pytest.fixture
def selector():
    return ModeSelector()


def _select(engine, selector, state, message=""):
    return selector.explain(engine.build_context(state, message))


# ---------------------------------------------------------------------------
# Safety overrides
# ---------------------------------------------------------------------------

class TestSafetyRules:

    def test_rule_order(self, selector):
        assert selector.cascade.rule_names == [
            "crisis", "panic", "high_anxiety", "user_preference", "youth",
            "cognitive_archetype", "control_archetype", "terse_messages",
            "technical_cues", "reflective_cues",
        ]

    def test_crisis(self, engine, selector, neutral_state):
        match = _select(engine, selector, neutral_state, "I want to die")
        assert match.outcome is Mode.CRISIS_PROTOCOL
        assert match.rule == "crisis"

    @pytest.mark.parametrize("message", [
        "my heart is racing",
        "the turbulence bombarded my nerves",
        "that landing was a bombshell",
        "we're going down",
    ])
    def test_ordinary_words_are_not_crisis(self, engine, selector, neutral_state, message):
        assert _select(engine, selector, neutral_state, message).rule != "crisis"

    @pytest.mark.parametrize("message", ["there's a bomb on board", "I have a bomb"])
    def test_bomb_statement_is_crisis(self, engine, selector, neutral_state, message):
        assert _select(engine, selector, neutral_state, message).outcome is Mode.CRISIS_PROTOCOL

    @pytest.mark.parametrize("anxiety", [0, 3, 5, 7, 9, 10])
    @pytest.mark.parametrize("preferred", [None, "OTIE-NERD", "OTIE-MINIMAL"])
    def test_crisis_always_wins(self, engine, selector, neutral_state, anxiety, preferred):
        neutral_state.anxiety_level = anxiety
        neutral_state.preferences.preferred_mode = preferred
        neutral_state.cognition.panic_language = True
        assert _select(engine, selector, neutral_state, "I'm having chest pain").outcome is Mode.CRISIS_PROTOCOL

    def test_panic_anxiety(self, engine, selector, neutral_state):
        neutral_state.anxiety_level = 9.5
        match = _select(engine, selector, neutral_state)
        assert match.outcome is Mode.SOFT
        assert match.rule == "panic"

    def test_panic_language_at_low_anxiety(self, engine, selector, neutral_state):
        neutral_state.cognition.panic_language = True
        assert _select(engine, selector, neutral_state).rule == "panic"

    def test_panic_honours_minimal_preference(self, engine, selector, neutral_state):
        neutral_state.anxiety_level = 9.5
        neutral_state.preferences.preferred_mode = Mode.MINIMAL
        assert _select(engine, selector, neutral_state).outcome is Mode.MINIMAL

    def test_panic_overrides_other_preferences(self, engine, selector, neutral_state):
        neutral_state.anxiety_level = 9.5
        neutral_state.preferences.preferred_mode = Mode.NERD
        assert _select(engine, selector, neutral_state).outcome is Mode.SOFT

    def test_high_anxiety(self, engine, selector, neutral_state):
        neutral_state.anxiety_level = 7
        match = _select(engine, selector, neutral_state)
        assert match.outcome is Mode.SOFT
        assert match.rule == "high_anxiety"

    def test_high_anxiety_minimal_preference(self, engine, selector, neutral_state):
        neutral_state.anxiety_level = 8
        neutral_state.preferences.preferred_mode = Mode.MINIMAL
        assert _select(engine, selector, neutral_state).outcome is Mode.MINIMAL

    @pytest.mark.parametrize("anxiety,preferred,message", list(itertools.product(
        [9, 9.5, 10],
        [None, Mode.CLASSIC, Mode.NERD, Mode.MYSTIC, Mode.KID],
        ["", "how does the engine work, explain the physics", "I surrender to the universe"],
    )))
    def test_panic_never_classic_nerd_or_mystic(self, engine, selector, neutral_state, anxiety, preferred, message):
        neutral_state.anxiety_level = anxiety
        neutral_state.preferences.preferred_mode = preferred
        mode = _select(engine, selector, neutral_state, message).outcome
        assert mode not in (Mode.CLASSIC, Mode.NERD, Mode.MYSTIC)


# ---------------------------------------------------------------------------
# Preference and personalization
# ---------------------------------------------------------------------------

class TestPersonalizationRules:

    def test_user_preference(self, engine, selector, neutral_state):
        neutral_state.preferences.preferred_mode = Mode.NERD
        match = _select(engine, selector, neutral_state)
        assert match.outcome is Mode.NERD
        assert match.rule == "user_preference"

    def test_preference_beats_youth(self, engine, selector, neutral_state):
        neutral_state.identity.age = 10
        neutral_state.preferences.preferred_mode = Mode.CLINICAL
        assert _select(engine, selector, neutral_state).outcome is Mode.CLINICAL

    def test_crisis_preference_is_ignored(self, engine, selector, neutral_state):
        neutral_state.preferences.preferred_mode = "CRISIS_PROTOCOL"
        assert _select(engine, selector, neutral_state).outcome is Mode.CLASSIC

    def test_youth(self, engine, selector, neutral_state):
        neutral_state.identity.age = 12
        assert _select(engine, selector, neutral_state).outcome is Mode.KID

    def test_sixteen_is_not_youth(self, engine, selector, neutral_state):
        neutral_state.identity.age = 16
        assert _select(engine, selector, neutral_state).rule != "youth"

    def test_unknown_age_is_not_youth(self, engine, selector, neutral_state):
        neutral_state.identity.age = None
        assert _select(engine, selector, neutral_state).rule == "default"

    def test_cognitive_archetype(self, engine, selector, neutral_state):
        neutral_state.fear_archetype.cognitive = 85
        assert _select(engine, selector, neutral_state).outcome is Mode.CLINICAL

    def test_control_archetype(self, engine, selector, neutral_state):
        neutral_state.fear_archetype.control = 85
        match = _select(engine, selector, neutral_state)
        assert match.outcome is Mode.CLASSIC
        assert match.rule == "control_archetype"

    def test_archetype_tie_goes_to_first_declared(self, engine, selector, neutral_state):
        neutral_state.fear_archetype.control = 90
        neutral_state.fear_archetype.cognitive = 90
        assert _select(engine, selector, neutral_state).rule == "control_archetype"

    def test_dominance_threshold_is_exclusive(self, engine, selector, neutral_state):
        neutral_state.fear_archetype.cognitive = 70
        assert _select(engine, selector, neutral_state).rule == "default"

    def test_somatic_dominance_has_no_rule(self, engine, selector, neutral_state):
        neutral_state.fear_archetype.somatic = 95
        neutral_state.fear_archetype.cognitive = 80
        assert _select(engine, selector, neutral_state).rule == "default"

    def test_terse_messages(self, engine, selector, neutral_state):
        neutral_state.behavior.message_length_avg = 10
        assert _select(engine, selector, neutral_state).outcome is Mode.MINIMAL

    def test_unknown_message_length_is_not_terse(self, engine, selector, neutral_state):
        neutral_state.behavior.message_length_avg = None
        assert _select(engine, selector, neutral_state).rule == "default"


# ---------------------------------------------------------------------------
# Message cues and default
# ---------------------------------------------------------------------------

class TestCueRules:

    def test_technical(self, engine, selector, neutral_state):
        match = _select(engine, selector, neutral_state, "How does the autopilot hold altitude?")
        assert match.outcome is Mode.NERD

    def test_reflective(self, engine, selector, neutral_state):
        match = _select(engine, selector, neutral_state, "I'm learning to surrender to the universe")
        assert match.outcome is Mode.MYSTIC

    def test_technical_beats_reflective(self, engine, selector, neutral_state):
        match = _select(engine, selector, neutral_state, "explain why meditation works")
        assert match.outcome is Mode.NERD

    def test_default(self, engine, selector, neutral_state):
        match = _select(engine, selector, neutral_state, "hi")
        assert match.outcome is Mode.CLASSIC
        assert match.rule == "default"
