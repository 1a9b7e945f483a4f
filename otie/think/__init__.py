"""Decision layer: trajectory prediction, crisis gate, mode and response pattern."""

from otie.think.context import DecisionContext
from otie.think.crisis import CrisisDetector
from otie.think.mode_selector import ModeSelector
from otie.think.response_pattern import select_response_pattern
from otie.think.trajectory import TrajectoryPredictor, predict_trajectory

__all__ = [
    "CrisisDetector",
    "DecisionContext",
    "ModeSelector",
    "TrajectoryPredictor",
    "predict_trajectory",
    "select_response_pattern",
]
