"""OTIE: emotional state engine for an anxious-flyer companion."""

from otie.engine import Engine, check_proactive_intervention, emotional_state_engine

__version__ = "0.1.0"

__all__ = [
    "Engine",
    "check_proactive_intervention",
    "emotional_state_engine",
]
