"""Tests for otie/engine.py: end-to-end decisions and cross-cutting properties."""

from __future__ import annotations

import itertools
import json
from unittest.mock import MagicMock, patch

import pytest

from otie.data.schema import ReadingHistory, UserState
from otie.engine import Engine, check_proactive_intervention, emotional_state_engine
from otie.utils.config import EngineConfig
from otie.utils.mappings import (
    EscalationReason,
    FlightPhase,
    Mode,
    ToolUrgency,
    TrajectoryOutcome,
    Trend,
)


# ---------------------------------------------------------------------------
# Worked scenarios
# ---------------------------------------------------------------------------

class TestScenarios:

    def test_catastrophic_panic_goes_to_charlie_not_crisis(self, engine, neutral_state):
        neutral_state.anxiety_level = 9.5
        neutral_state.cognition.panic_language = True
        out = engine.process_message("I think we're going down", neutral_state)
        assert out.anxiety_detected == 9.5
        assert out.crisis is False
        assert out.mode is Mode.SOFT
        assert out.escalate is True
        assert out.escalation_reason is EscalationReason.CATASTROPHIC_THINKING
        assert out.tool_offered is None
        assert out.tool_launched is False

    def test_going_down_as_configured_crisis_phrase(self, neutral_state):
        config = EngineConfig.from_dict({"phrases": {"crisis": ["going down"]}})
        neutral_state.anxiety_level = 9.5
        neutral_state.cognition.panic_language = True
        out = Engine(config).process_message("I think we're going down", neutral_state)
        assert out.mode is Mode.CRISIS_PROTOCOL

    def test_flat_history_without_heart_rate(self, engine, neutral_state):
        out = engine.process_message("hello", neutral_state)
        assert out.anxiety_rate == 0.0
        assert out.hr_rate == 0.0
        assert out.trajectory.outcome is TrajectoryOutcome.LIKELY_PLATEAU
        assert out.mode is Mode.CLASSIC

    def test_flat_history_follows_preference(self, engine, neutral_state):
        neutral_state.preferences.preferred_mode = Mode.MYSTIC
        assert engine.process_message("hello", neutral_state).mode is Mode.MYSTIC

    def test_descent_dread(self, engine, neutral_state):
        neutral_state.flight.phase = FlightPhase.DESCENT
        neutral_state.flight.time_in_phase = 700
        neutral_state.anxiety_level = 7
        neutral_state.anxiety_history = ReadingHistory.from_values([6.8, 6.9, 7.0])
        out = engine.process_message("", neutral_state)
        assert out.anxiety_rate == pytest.approx(0.1)
        assert out.trajectory.outcome is TrajectoryOutcome.LIKELY_SPIKE
        assert out.trajectory.confidence == 0.65

    def test_tools_not_working(self, engine):
        state = UserState(anxiety_level=7, anxiety_trend=Trend.RISING)
        state.conversation.tools_offered = 2
        state.conversation.tools_accepted = 1
        out = engine.process_message("still bad", state)
        assert out.escalate is True
        assert out.escalation_reason is EscalationReason.TOOLS_NOT_WORKING
        assert out.tool_offered is None

    def test_door_close_mock_state(self, engine, mock_state):
        out = engine.process_message(
            "The door just closed and I'm freaking out but trying to stay on the plane.", mock_state,
        )
        assert out.mode is Mode.SOFT
        assert out.pattern.tool is ToolUrgency.OFFER_NOW
        assert out.trajectory.outcome is TrajectoryOutcome.LIKELY_SPIKE
        assert out.tool_offered == "4-7-8_breathing"
        assert out.intervention == "4-7-8_breathing"
        assert out.tool_launched is False
        assert out.escalate is False
        assert out.hr_rate == pytest.approx(9.0)


# ---------------------------------------------------------------------------
# Crisis, tools and escalation outputs
# ---------------------------------------------------------------------------

class TestDecisions:

    def test_crisis_output(self, engine, mock_state):
        out = engine.process_message("I'm going to kill myself", mock_state)
        assert out.mode is Mode.CRISIS_PROTOCOL
        assert out.crisis is True
        assert out.pattern is None
        assert out.escalate is False
        assert out.tool_offered is None
        assert out.tool_launched is False
        assert out.anxiety_rate == pytest.approx(1.0)

    def test_message_defaults_to_last_message_text(self, engine, neutral_state):
        neutral_state.conversation.last_message_text = "I want to die"
        assert engine.process_message(None, neutral_state).crisis is True

    def test_empty_message(self, engine, neutral_state):
        out = engine.process_message("", neutral_state)
        assert out.crisis is False
        assert out.aviation_trigger is False

    def test_auto_launch_at_panic(self, engine, neutral_state):
        neutral_state.anxiety_level = 9.5
        out = engine.process_message("", neutral_state)
        assert out.pattern.tool is ToolUrgency.IMMEDIATE
        assert out.tool_offered == "4-7-8_breathing"
        assert out.tool_launched is True

    def test_calm_user_gets_no_tool(self, engine, neutral_state):
        out = engine.process_message("nice view", neutral_state)
        assert out.tool_offered is None
        assert out.intervention is None
        assert out.tool_launched is False

    def test_validation_only_offers_no_tool(self, neutral_state):
        config = EngineConfig.from_dict({"ranking_weights": {
            "likely_plateau": {"relief": 0, "skill": 0, "agency": 1, "risk": 0},
        }})
        neutral_state.anxiety_level = 5
        neutral_state.anxiety_history = ReadingHistory.from_values([5, 5, 5])
        out = Engine(config).process_message("", neutral_state)
        assert out.intervention == "validation_only"
        assert out.tool_offered is None
        assert out.tool_launched is False

    def test_aviation_trigger_cue(self, engine, neutral_state):
        out = engine.process_message("what was that loud grinding noise?", neutral_state)
        assert out.aviation_trigger is True

    def test_timestamp_is_injectable(self, engine, neutral_state, fixed_now):
        out = engine.process_message("hi", neutral_state, now=fixed_now)
        assert out.timestamp == fixed_now

    @pytest.mark.parametrize("anxiety,dissociation,reassurance,message", list(itertools.product(
        [2, 5, 7, 8, 9.5],
        [False, True],
        [0, 3],
        ["", "get me a real pilot", "what's that noise"],
    )))
    def test_escalation_preempts_tools(self, engine, mock_state, anxiety, dissociation, reassurance, message):
        mock_state.anxiety_level = anxiety
        mock_state.cognition.dissociation_indicators = dissociation
        mock_state.conversation.reassurance_attempts = reassurance
        out = engine.process_message(message, mock_state)
        if out.escalate:
            assert out.tool_offered is None
            assert out.tool_launched is False

    @pytest.mark.parametrize("anxiety", [0, 2.5, 5, 7.5, 9, 10])
    def test_crisis_wins_at_any_anxiety(self, engine, mock_state, anxiety):
        mock_state.anxiety_level = anxiety
        mock_state.preferences.preferred_mode = Mode.NERD
        assert engine.process_message("there is a bomb", mock_state).mode is Mode.CRISIS_PROTOCOL


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

class TestContract:

    def test_input_state_not_mutated(self, engine, mock_state):
        mock_state.anxiety_level = 15
        before = mock_state.to_dict()
        engine.process_message("we're going down", mock_state)
        engine.check_proactive(mock_state)
        assert mock_state.to_dict() == before

    def test_idempotent(self, engine, mock_state, fixed_now):
        a = engine.process_message("help", mock_state, now=fixed_now)
        b = engine.process_message("help", mock_state, now=fixed_now)
        assert a == b

    def test_malformed_state_never_raises(self, engine):
        state = UserState.from_dict({"anxiety_level": "NaN", "flight": {"phase": 7}, "biometrics": {}})
        out = engine.process_message("hi", state)
        assert out.anxiety_detected == 5.0
        assert engine.check_proactive(state).intervene is False

    def test_to_dict_is_json_serializable(self, engine, mock_state, fixed_now):
        d = engine.process_message("hi", mock_state, now=fixed_now).to_dict()
        json.dumps(d)
        assert d["mode"] == "OTIE-SOFT"
        assert d["charlie_handoff"] is False
        assert d["charlie_reason"] is None
        assert set(d["derivatives"]) == {"anxiety_rate", "hr_rate"}
        assert d["pattern"]["tool"] == "offer_now"
        assert d["timestamp"] == fixed_now.isoformat()

    def test_proactive_to_dict(self, engine, mock_state):
        d = engine.check_proactive(mock_state).to_dict()
        json.dumps(d)
        assert d["intervene"] is True
        assert d["reason"] == "heart_rate_spike"
        assert d["message_template"] == "biometric_check_in"

    def test_proactive_timestamp_is_injectable(self, engine, mock_state, neutral_state, fixed_now):
        assert engine.check_proactive(mock_state, now=fixed_now).timestamp == fixed_now
        quiet = engine.check_proactive(neutral_state, now=fixed_now)
        assert quiet.intervene is False
        assert quiet.to_dict()["timestamp"] == fixed_now.isoformat()
        assert engine.check_proactive(neutral_state).timestamp is not None

    def test_module_wrappers(self, mock_state):
        assert emotional_state_engine("hi", mock_state).mode is Mode.SOFT
        assert check_proactive_intervention(mock_state).intervene is True

    def test_wrappers_delegate_to_default_engine(self, mock_state, fixed_now):
        fake = MagicMock(spec=Engine)
        with patch("otie.engine._default_engine", fake):
            emotional_state_engine("hi", mock_state, now=fixed_now)
            check_proactive_intervention(mock_state, now=fixed_now)
        fake.process_message.assert_called_once_with("hi", mock_state, now=fixed_now)
        fake.check_proactive.assert_called_once_with(mock_state, now=fixed_now)
