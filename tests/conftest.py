"""Shared pytest fixtures for all test modules."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from pathlib import Path

import pytest

from otie.data.schema import UserState
from otie.engine import Engine
from otie.utils.config import EngineConfig

PROJECT_ROOT = Path(__file__).resolve().parent.parent

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Canonical user state: anxious flyer at door close, anxiety climbing
# ---------------------------------------------------------------------------

MOCK_STATE = {
    "identity": {"user_id": "test-user-1", "user_name": "Test User", "age": 35},
    "flight_count": 1,
    "fear_archetype": {"control": 80, "somatic": 60, "cognitive": 50, "trust": 40, "trauma": 20},
    "anxiety_level": 7,
    "anxiety_history": [4, 5, 6, 7],
    "anxiety_trend": "rising",
    "anxiety_rate_of_change": 1.0,
    "biometrics": {
        "heart_rate": 105,
        "heart_rate_baseline": 75,
        "hrv": 50,
        "hrv_baseline": 65,
        "respiratory_rate": 20,
        "skin_conductance": "normal",
        "heart_rate_history": [90, 96, 105],
    },
    "behavior": {
        "message_frequency": 3,
        "message_length_avg": 40,
        "response_latency": 8,
        "tool_usage_last_10min": 1,
        "time_since_last_message": 30,
    },
    "cognition": {
        "catastrophizing": True,
        "control_seeking": True,
        "past_trigger_reference": False,
        "dissociation_indicators": False,
        "panic_language": False,
        "request_for_help": True,
    },
    "flight": {
        "phase": "door_close",
        "time_in_phase": 60,
        "time_to_next_event": 120,
        "aircraft_type": "737-800",
        "seat_position": "12A",
        "flight_number": "UA123",
        "route": "ORD-LAX",
        "altitude": 0,
        "speed": 0,
        "turbulence_forecast": "none",
        "weather_departure": "clear",
        "weather_arrival": "clear",
    },
    "history": {
        "known_triggers": ["door_close"],
        "effective_tools": ["4-7-8_breathing"],
        "ineffective_tools": [],
        "regulation_speed": "medium",
        "typical_peak_anxiety_moment": "door_close",
        "charlie_handoff_history": 0,
        "graduation_progress": 0,
    },
    "preferences": {
        "preferred_mode": None,
        "verbosity": "moderate",
        "humor_tolerance": "medium",
        "language": "en",
    },
    "conversation": {
        "messages_in_session": 3,
        "otie_interventions": 1,
        "tools_offered": 1,
        "tools_accepted": 1,
        "reassurance_attempts": 1,
        "last_otie_mode": "OTIE-CLASSIC",
        "last_message_text": "The door just closed and I'm freaking out.",
    },
    "proactive_interventions_count": 0,
}


@pytest.fixture
def mock_state_dict():
    return copy.deepcopy(MOCK_STATE)


@pytest.fixture
def mock_state():
    return UserState.from_dict(copy.deepcopy(MOCK_STATE))


@pytest.fixture
def neutral_state():
    """Cruise, steady anxiety of 3, no flags, no archetype dominance."""
    return UserState.from_dict({
        "identity": {"user_id": "u-neutral", "age": 30},
        "fear_archetype": {"control": 40, "somatic": 40, "cognitive": 40, "trust": 40, "trauma": 40},
        "anxiety_level": 3,
        "anxiety_history": [3, 3, 3],
        "behavior": {"message_length_avg": 60},
        "flight": {"phase": "cruise", "time_in_phase": 600, "time_to_next_event": 1800},
    })


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def engine():
    return Engine()


@pytest.fixture
def fixed_now():
    return FIXED_NOW
