"""Tests for otie/learn/effectiveness.py."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from otie.data.schema import History
from otie.learn.effectiveness import assess_intervention, update_tool_history
from otie.utils.config import EngineConfig


class TestAssessIntervention:

    def test_two_point_drop_is_effective(self):
        record = assess_intervention("4-7-8_breathing", 8, 6, 240)
        assert record.anxiety_drop == 2
        assert record.effective is True

    def test_small_drop_is_not(self):
        record = assess_intervention("4-7-8_breathing", 8, 6.5, 240)
        assert record.anxiety_drop == pytest.approx(1.5)
        assert record.effective is False

    def test_rise_is_not(self):
        assert assess_intervention("countdown", 5, 7, 60).effective is False

    def test_ratings_are_clamped(self):
        record = assess_intervention("countdown", 14, -2, 60)
        assert record.anxiety_before == 10
        assert record.anxiety_after == 0
        assert record.anxiety_drop == 10

    def test_threshold_is_configurable(self):
        config = EngineConfig.from_dict({"learning": {"effective_anxiety_drop": 3}})
        assert assess_intervention("countdown", 8, 6, 60, config=config).effective is False

    def test_ids_and_timestamp(self):
        ts = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
        record = assess_intervention(
            "physiological_sigh", 7, 4, 90, user_id="u1", intervention_id="abc", timestamp=ts,
        )
        assert record.intervention_id == "abc"
        assert record.user_id == "u1"
        assert record.timestamp == ts

    def test_generated_ids_are_unique(self):
        a = assess_intervention("countdown", 7, 4, 90)
        b = assess_intervention("countdown", 7, 4, 90)
        assert a.intervention_id != b.intervention_id

    def test_negative_regulation_time_floored(self):
        assert assess_intervention("countdown", 7, 4, -5).regulation_time == 0.0


class TestUpdateToolHistory:

    def test_effective_tool_added(self):
        history = History()
        updated = update_tool_history(history, assess_intervention("physiological_sigh", 8, 5, 60))
        assert updated.effective_tools == ["physiological_sigh"]
        assert updated.ineffective_tools == []
        assert history.effective_tools == []

    def test_latest_outcome_wins(self):
        history = History(effective_tools=["countdown"], ineffective_tools=["4-7-8_breathing"])
        history = update_tool_history(history, assess_intervention("countdown", 8, 8, 60))
        history = update_tool_history(history, assess_intervention("4-7-8_breathing", 8, 4, 60))
        assert history.effective_tools == ["4-7-8_breathing"]
        assert history.ineffective_tools == ["countdown"]

    def test_other_fields_kept(self):
        history = History(known_triggers=["takeoff"], charlie_handoff_history=2)
        updated = update_tool_history(history, assess_intervention("countdown", 8, 5, 60))
        assert updated.known_triggers == ["takeoff"]
        assert updated.charlie_handoff_history == 2

    def test_learned_tool_becomes_a_candidate(self, engine, neutral_state):
        before = [c.tool_code for c in engine.ranker.generate_candidates(neutral_state)]
        assert "physiological_sigh" not in before

        record = assess_intervention("physiological_sigh", 8, 5, 60)
        neutral_state.history = update_tool_history(neutral_state.history, record)
        after = [c.tool_code for c in engine.ranker.generate_candidates(neutral_state)]
        assert "physiological_sigh" in after
