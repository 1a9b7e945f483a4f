"""Tests for otie/think/response_pattern.py."""

from __future__ import annotations

import pytest

from otie.think.response_pattern import (
    CALM_PATTERN,
    HIGH_PATTERN,
    MODERATE_PATTERN,
    PANIC_PATTERN,
    select_response_pattern,
)
from otie.utils.config import EngineConfig
from otie.utils.mappings import ToolUrgency


class TestSelectResponsePattern:

    @pytest.mark.parametrize("anxiety,expected", [
        (10, PANIC_PATTERN),
        (9, PANIC_PATTERN),
        (8.9, HIGH_PATTERN),
        (7, HIGH_PATTERN),
        (6.9, MODERATE_PATTERN),
        (4, MODERATE_PATTERN),
        (3.9, CALM_PATTERN),
        (0, CALM_PATTERN),
    ])
    def test_bands(self, anxiety, expected):
        assert select_response_pattern(anxiety) == expected

    def test_panic_shape(self):
        p = select_response_pattern(9.5)
        assert p.tool is ToolUrgency.IMMEDIATE
        assert p.word_count_target == 20
        assert p.humor is False
        assert p.explanation_depth == 0

    def test_calm_shape(self):
        p = select_response_pattern(1)
        assert p.tool is ToolUrgency.IF_REQUESTED
        assert p.educate == "deep_dive_ok"
        assert p.humor is True

    def test_moderate_humor_is_gentle(self):
        assert select_response_pattern(5).humor == "gentle"

    def test_word_budget_shrinks_with_anxiety(self):
        budgets = [select_response_pattern(a).word_count_target for a in (1, 5, 8, 9.5)]
        assert budgets == sorted(budgets, reverse=True)

    def test_configurable_bands(self):
        config = EngineConfig(panic_anxiety=8.0)
        assert select_response_pattern(8.5, config) == PANIC_PATTERN
