"""Handoff decisions to the human pilot persona ("Captain Charlie").

The companion escalates when its own tools are not working or when the user
needs a human voice of authority. Rules are evaluated in order and the first
match decides both the reason and the kind of message Charlie should send.
"""

from __future__ import annotations

import logging

from otie.data.schema import EscalationDecision, UserState
from otie.sense.derivatives import effective_trend
from otie.think.context import DecisionContext
from otie.think.rules import Rule, RuleCascade, RuleMatch
from otie.utils.config import EngineConfig
from otie.utils.mappings import CharlieMessageType, EscalationReason, PhraseSet, Trend

logger = logging.getLogger(__name__)


def sustained_anxiety_seconds(state: UserState, config: EngineConfig | None = None) -> float:
    """How long anxiety has stayed at or above the sustained floor.

    Walks the history backward from the newest reading while readings are at
    or above ``config.sustained_anxiety_floor``. Each qualifying reading
    counts for the real gap to its predecessor when both carry timestamps,
    otherwise for one sampling interval.
    """
    config = config or EngineConfig()
    readings = state.anxiety_history.readings()
    duration = 0.0
    for i in range(len(readings) - 1, -1, -1):
        current = readings[i]
        if current.value < config.sustained_anxiety_floor:
            break
        gap = None
        if i > 0:
            previous = readings[i - 1]
            if current.timestamp is not None and previous.timestamp is not None:
                try:
                    gap = (current.timestamp - previous.timestamp).total_seconds()
                except TypeError:
                    gap = None
        duration += gap if gap is not None and gap > 0 else config.sampling_interval_seconds
    return duration


def _decision(reason: EscalationReason, message_type: CharlieMessageType):
    return lambda _: EscalationDecision(escalate=True, reason=reason, message_type=message_type)


def _sustained_high(ctx: DecisionContext) -> bool:
    return (
        ctx.anxiety >= ctx.config.sustained_anxiety_level
        and sustained_anxiety_seconds(ctx.state, ctx.config) >= ctx.config.sustained_seconds
    )


def _tools_not_working(ctx: DecisionContext) -> bool:
    conv = ctx.state.conversation
    return (
        conv.tools_offered >= ctx.config.tools_offered_min
        and conv.tools_accepted >= ctx.config.tools_accepted_min
        and effective_trend(ctx.state, ctx.derivatives) is Trend.RISING
    )


ESCALATION_RULES: list[Rule[DecisionContext, EscalationDecision]] = [
    Rule(
        "sustained_high_anxiety",
        _sustained_high,
        _decision(EscalationReason.SUSTAINED_HIGH_ANXIETY, CharlieMessageType.GROUNDING),
    ),
    Rule(
        "catastrophic_thinking",
        lambda c: c.state.cognition.panic_language and c.has_cue(PhraseSet.CATASTROPHIC),
        _decision(EscalationReason.CATASTROPHIC_THINKING, CharlieMessageType.PILOT_AUTHORITY),
    ),
    Rule(
        "tools_not_working",
        _tools_not_working,
        _decision(EscalationReason.TOOLS_NOT_WORKING, CharlieMessageType.HUMAN_REASSURANCE),
    ),
    Rule(
        "dissociation",
        lambda c: c.state.cognition.dissociation_indicators,
        _decision(EscalationReason.DISSOCIATION, CharlieMessageType.GROUNDING),
    ),
    Rule(
        "reassurance_ineffective",
        lambda c: c.state.conversation.reassurance_attempts >= c.config.reassurance_attempts_min
        and c.anxiety >= c.config.reassurance_anxiety,
        _decision(EscalationReason.REASSURANCE_INEFFECTIVE, CharlieMessageType.PILOT_AUTHORITY),
    ),
    Rule(
        "user_request",
        lambda c: c.has_cue(PhraseSet.HUMAN_REQUEST),
        _decision(EscalationReason.USER_REQUEST, CharlieMessageType.REQUESTED),
    ),
]

NO_ESCALATION = EscalationDecision(escalate=False)


class EscalationDecider:
    def __init__(self) -> None:
        self.cascade: RuleCascade[DecisionContext, EscalationDecision] = RuleCascade(
            "escalation", ESCALATION_RULES, default=lambda _: NO_ESCALATION,
        )

    def decide(self, ctx: DecisionContext) -> EscalationDecision:
        decision = self.cascade.evaluate(ctx).outcome
        if decision.escalate:
            logger.info(
                f"Escalating to Charlie: {decision.reason.value} "
                f"({decision.message_type.value}) at anxiety {ctx.anxiety:.1f}"
            )
        return decision

    def explain(self, ctx: DecisionContext) -> RuleMatch[EscalationDecision]:
        return self.cascade.evaluate(ctx)
