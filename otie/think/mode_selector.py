"""Persona selection as a priority cascade.

Safety overrides (crisis, panic, high anxiety) dominate everything. An
explicit user preference beats the personalization heuristics, but only while
anxiety is below the high band: at high anxiety a prescribed safe mode is
used regardless of taste. The order of ``ModeSelector.cascade.rules`` is the
contract.
"""

from __future__ import annotations

from otie.think.context import DecisionContext
from otie.think.rules import Rule, RuleCascade, RuleMatch
from otie.utils.mappings import Mode, PhraseSet


def _prefers_minimal(ctx: DecisionContext) -> bool:
    return ctx.state.preferences.preferred_mode is Mode.MINIMAL


def _safe_mode(ctx: DecisionContext) -> Mode:
    return Mode.MINIMAL if _prefers_minimal(ctx) else Mode.SOFT


def _below_high(ctx: DecisionContext) -> bool:
    return ctx.anxiety < ctx.config.high_anxiety


def _dominant_trait_is(trait: str):
    def predicate(ctx: DecisionContext) -> bool:
        name, score = ctx.state.fear_archetype.dominant_trait()
        return name == trait and score > ctx.config.archetype_dominance and _below_high(ctx)
    return predicate


def _is_youth(ctx: DecisionContext) -> bool:
    age = ctx.state.identity.age
    return age is not None and age < ctx.config.youth_age


def _is_terse(ctx: DecisionContext) -> bool:
    avg = ctx.state.behavior.message_length_avg
    return avg is not None and avg < ctx.config.terse_message_length and _below_high(ctx)


MODE_RULES: list[Rule[DecisionContext, Mode]] = [
    Rule("crisis", lambda c: c.crisis, lambda c: Mode.CRISIS_PROTOCOL),
    Rule(
        "panic",
        lambda c: c.anxiety >= c.config.panic_anxiety or c.state.cognition.panic_language,
        _safe_mode,
    ),
    Rule("high_anxiety", lambda c: c.anxiety >= c.config.high_anxiety, _safe_mode),
    Rule(
        "user_preference",
        lambda c: c.state.preferences.preferred_mode is not None and _below_high(c),
        lambda c: c.state.preferences.preferred_mode,
    ),
    Rule("youth", _is_youth, lambda c: Mode.KID),
    Rule("cognitive_archetype", _dominant_trait_is("cognitive"), lambda c: Mode.CLINICAL),
    Rule("control_archetype", _dominant_trait_is("control"), lambda c: Mode.CLASSIC),
    Rule("terse_messages", _is_terse, lambda c: Mode.MINIMAL),
    Rule("technical_cues", lambda c: c.has_cue(PhraseSet.TECHNICAL), lambda c: Mode.NERD),
    Rule("reflective_cues", lambda c: c.has_cue(PhraseSet.REFLECTIVE), lambda c: Mode.MYSTIC),
]


class ModeSelector:
    def __init__(self) -> None:
        self.cascade: RuleCascade[DecisionContext, Mode] = RuleCascade(
            "mode", MODE_RULES, default=lambda c: c.config.default_mode,
        )

    def select(self, ctx: DecisionContext) -> Mode:
        return self.cascade.evaluate(ctx).outcome

    def explain(self, ctx: DecisionContext) -> RuleMatch[Mode]:
        """Like ``select`` but also reports which rule fired."""
        return self.cascade.evaluate(ctx)
