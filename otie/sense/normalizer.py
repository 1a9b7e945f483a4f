"""Input normalization for user-state snapshots.

Clamps and defaults raw fields into safe ranges so nothing downstream has to
second-guess the caller. Every function here is total: malformed input is
defaulted, never raised.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import replace
from typing import Any

from otie.data.schema import Reading, ReadingHistory, UserState
from otie.utils.config import EngineConfig
from otie.utils.mappings import Mode, parse_enum

logger = logging.getLogger(__name__)

ANXIETY_MIN = 0.0
ANXIETY_MAX = 10.0


def normalize_anxiety(value: Any, default: float = 5.0) -> float:
    """Clamp an anxiety rating to [0, 10]; absent or NaN becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(f):
        return default
    return max(ANXIETY_MIN, min(ANXIETY_MAX, f))


def ensure_valid_mode(value: Any, default: Mode = Mode.CLASSIC) -> Mode:
    """Return ``value`` as a Mode, or ``default`` when it is not a known mode."""
    mode = parse_enum(Mode, value)
    return mode if mode is not None else default


def normalize_preferred_mode(value: Any) -> Mode | None:
    """A user preference may name any persona, but never the crisis protocol."""
    mode = parse_enum(Mode, value)
    if mode is None or mode is Mode.CRISIS_PROTOCOL:
        return None
    return mode


def _clean_history(history: ReadingHistory, clamp: bool, limit: int) -> ReadingHistory:
    readings = []
    for r in history:
        v = r.value
        if v is None or math.isnan(v):
            continue
        if clamp:
            v = max(ANXIETY_MIN, min(ANXIETY_MAX, v))
        readings.append(Reading(v, r.timestamp))
    # Oldest readings fall off past the limit.
    return ReadingHistory(readings, maxlen=max(1, limit))


def normalize_state(state: UserState, config: EngineConfig | None = None) -> UserState:
    """Return a normalized copy of ``state``; the input is left untouched."""
    config = config or EngineConfig()
    state = copy.deepcopy(state)

    anxiety = normalize_anxiety(state.anxiety_level, config.default_anxiety)
    if state.anxiety_level is not None and anxiety != state.anxiety_level:
        logger.warning(f"Anxiety level {state.anxiety_level!r} normalized to {anxiety}")

    biometrics = state.biometrics
    if biometrics is not None:
        biometrics = replace(
            biometrics,
            heart_rate_history=_clean_history(
                biometrics.heart_rate_history, clamp=False, limit=config.history_limit,
            ),
        )

    conversation = replace(
        state.conversation,
        tools_offered=max(0, state.conversation.tools_offered),
        tools_accepted=max(0, state.conversation.tools_accepted),
        reassurance_attempts=max(0, state.conversation.reassurance_attempts),
        last_otie_mode=ensure_valid_mode(state.conversation.last_otie_mode, config.default_mode),
        last_message_text=state.conversation.last_message_text or "",
    )

    return replace(
        state,
        anxiety_level=anxiety,
        anxiety_history=_clean_history(state.anxiety_history, clamp=True, limit=config.history_limit),
        biometrics=biometrics,
        preferences=replace(
            state.preferences,
            preferred_mode=normalize_preferred_mode(state.preferences.preferred_mode),
        ),
        conversation=conversation,
        flight_count=max(0, state.flight_count),
        proactive_interventions_count=max(0, state.proactive_interventions_count),
    )
