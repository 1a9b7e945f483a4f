"""Anxiety band -> response-shape contract.

Higher anxiety means fewer words, less education and a sooner tool offer.
"""

from __future__ import annotations

from otie.data.schema import ResponsePattern
from otie.utils.config import EngineConfig
from otie.utils.mappings import ToolUrgency

PANIC_PATTERN = ResponsePattern(
    validate="brief",
    educate="skip",
    tool=ToolUrgency.IMMEDIATE,
    empower="after_tool",
    word_count_target=20,
    sentence_structure="short",
    humor=False,
    explanation_depth=0,
)

HIGH_PATTERN = ResponsePattern(
    validate="direct",
    educate="minimal",
    tool=ToolUrgency.OFFER_NOW,
    empower="gentle",
    word_count_target=50,
    sentence_structure="short",
    humor=False,
    explanation_depth=1,
)

MODERATE_PATTERN = ResponsePattern(
    validate="full",
    educate="moderate",
    tool=ToolUrgency.OFFER,
    empower="celebrate",
    word_count_target=100,
    sentence_structure="mixed",
    humor="gentle",
    explanation_depth=2,
)

CALM_PATTERN = ResponsePattern(
    validate="light",
    educate="deep_dive_ok",
    tool=ToolUrgency.IF_REQUESTED,
    empower="build_confidence",
    word_count_target=200,
    sentence_structure="natural",
    humor=True,
    explanation_depth=3,
)


def select_response_pattern(anxiety: float, config: EngineConfig | None = None) -> ResponsePattern:
    """Pure lookup by anxiety band: [9,10], [7,9), [4,7), [0,4)."""
    config = config or EngineConfig()
    if anxiety >= config.panic_anxiety:
        return PANIC_PATTERN
    if anxiety >= config.high_anxiety:
        return HIGH_PATTERN
    if anxiety >= config.moderate_anxiety:
        return MODERATE_PATTERN
    return CALM_PATTERN
