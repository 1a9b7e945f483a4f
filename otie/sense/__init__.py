"""Signal processing: normalization, derivatives, time axes and message cues."""

from otie.sense.cues import PhraseMatcher
from otie.sense.derivatives import calculate_derivatives
from otie.sense.normalizer import ensure_valid_mode, normalize_anxiety, normalize_state
from otie.sense.time_axes import build_time_axes

__all__ = [
    "PhraseMatcher",
    "build_time_axes",
    "calculate_derivatives",
    "ensure_valid_mode",
    "normalize_anxiety",
    "normalize_state",
]
