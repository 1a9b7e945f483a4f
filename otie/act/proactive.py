"""Proactive monitor: should the companion speak without being asked?

Runs on a timer between user messages. A per-flight rate limit gates every
rule, so the companion never nags; after that the first matching rule picks
the reason and the message to send.
"""

from __future__ import annotations

import logging
import re

from otie.act.messages import render_proactive_message
from otie.data.schema import ProactiveInterventionDecision, UserState
from otie.sense.derivatives import effective_rate
from otie.think.context import DecisionContext
from otie.think.rules import Rule, RuleCascade, RuleMatch
from otie.utils.config import EngineConfig
from otie.utils.mappings import (
    TURBULENCE_SEVERITY,
    MessageTemplate,
    ProactiveReason,
    TrajectoryOutcome,
    next_phase,
)

logger = logging.getLogger(__name__)

_FORECAST_RE = re.compile(r"^(?P<severity>[a-z]+)(?:_in_(?P<minutes>\d+(?:\.\d+)?)_?min(?:utes)?)?$")


def parse_turbulence_forecast(forecast: str | None) -> tuple[str, float] | None:
    """Parse ``"moderate"`` or ``"moderate_in_5min"`` into ``(severity, minutes)``.

    A bare severity means the turbulence is imminent (0 minutes). Returns
    None for "none", an unknown severity or an unparseable string.
    """
    if not forecast:
        return None
    match = _FORECAST_RE.match(forecast.strip().lower())
    if match is None:
        return None
    severity = match.group("severity")
    if severity not in TURBULENCE_SEVERITY or TURBULENCE_SEVERITY[severity] == 0:
        return None
    minutes = float(match.group("minutes")) if match.group("minutes") else 0.0
    return severity, minutes


def is_hard_phase(state: UserState, config: EngineConfig | None = None) -> bool:
    """A phase is hard if configured as such or if this user's history says so."""
    config = config or EngineConfig()
    phase = state.flight.phase
    if phase is None:
        return False
    return (
        phase in config.hard_phases
        or phase.value in state.history.known_triggers
        or phase.value == state.history.typical_peak_anxiety_moment
    )


# ---------------------------------------------------------------------------
# Rule predicates
# ---------------------------------------------------------------------------

def _approaching_known_trigger(ctx: DecisionContext) -> bool:
    upcoming = next_phase(ctx.state.flight.phase)
    time_to_next = ctx.state.flight.time_to_next_event
    if upcoming is None or time_to_next is None:
        return False
    if upcoming.value not in ctx.state.history.known_triggers:
        return False
    lead = ctx.config.trigger_lead_seconds.get(upcoming.value, ctx.config.default_trigger_lead_seconds)
    return time_to_next < lead


def _heart_rate_spike(ctx: DecisionContext) -> bool:
    hr = ctx.derivatives.heart_rate
    return hr.has_signal and hr.ddt > ctx.config.proactive_heart_rate_spike


def _silent_during_hard_phase(ctx: DecisionContext) -> bool:
    silence = ctx.state.behavior.time_since_last_message
    return (
        silence is not None
        and silence > ctx.config.silence_seconds
        and is_hard_phase(ctx.state, ctx.config)
    )


def _turbulence_incoming(ctx: DecisionContext) -> bool:
    if "turbulence" not in ctx.state.history.known_triggers:
        return False
    parsed = parse_turbulence_forecast(ctx.state.flight.turbulence_forecast)
    if parsed is None:
        return False
    severity, minutes = parsed
    min_severity = TURBULENCE_SEVERITY.get(ctx.config.turbulence_min_severity, 2)
    return TURBULENCE_SEVERITY[severity] >= min_severity and minutes <= ctx.config.turbulence_lead_minutes


def _predicted_spike_window(ctx: DecisionContext) -> bool:
    return (
        ctx.trajectory.outcome is TrajectoryOutcome.LIKELY_SPIKE
        and ctx.anxiety >= ctx.config.predicted_spike_min_anxiety
        and is_hard_phase(ctx.state, ctx.config)
    )


def _intervene(reason: ProactiveReason, template: MessageTemplate):
    return lambda _: (reason, template)


PROACTIVE_RULES: list[Rule[DecisionContext, tuple[ProactiveReason, MessageTemplate]]] = [
    Rule(
        "known_trigger_approaching",
        _approaching_known_trigger,
        _intervene(ProactiveReason.KNOWN_TRIGGER_APPROACHING, MessageTemplate.PREDICTIVE_WARNING),
    ),
    Rule(
        "rapid_anxiety_spike",
        lambda c: effective_rate(c.state, c.derivatives) > c.config.proactive_anxiety_spike,
        _intervene(ProactiveReason.RAPID_ANXIETY_SPIKE, MessageTemplate.PROACTIVE_BREATHWORK),
    ),
    Rule(
        "heart_rate_spike",
        _heart_rate_spike,
        _intervene(ProactiveReason.HEART_RATE_SPIKE, MessageTemplate.BIOMETRIC_CHECK_IN),
    ),
    Rule(
        "silent_during_hard_moment",
        _silent_during_hard_phase,
        _intervene(ProactiveReason.SILENT_DURING_HARD_MOMENT, MessageTemplate.GENTLE_CHECK_IN),
    ),
    Rule(
        "turbulence_forecast",
        _turbulence_incoming,
        _intervene(ProactiveReason.TURBULENCE_FORECAST, MessageTemplate.HEADS_UP_TURBULENCE),
    ),
    Rule(
        "predicted_spike_window",
        _predicted_spike_window,
        _intervene(ProactiveReason.PREDICTED_SPIKE_WINDOW, MessageTemplate.PROACTIVE_BREATHWORK),
    ),
]


class ProactiveMonitor:
    def __init__(self) -> None:
        self.cascade = RuleCascade("proactive", PROACTIVE_RULES, default=lambda _: None)

    def rate_limited(self, state: UserState, config: EngineConfig) -> bool:
        return state.proactive_interventions_count >= config.proactive_rate_limit

    def explain(self, ctx: DecisionContext) -> RuleMatch:
        return self.cascade.evaluate(ctx)

    def check(self, ctx: DecisionContext) -> ProactiveInterventionDecision:
        if self.rate_limited(ctx.state, ctx.config):
            logger.debug(
                f"Proactive check skipped: {ctx.state.proactive_interventions_count} "
                f"interventions already this flight"
            )
            return ProactiveInterventionDecision(
                intervene=False,
                reason=ProactiveReason.RATE_LIMITED,
                trajectory=ctx.trajectory,
            )

        outcome = self.cascade.evaluate(ctx).outcome
        if outcome is None:
            return ProactiveInterventionDecision(intervene=False, trajectory=ctx.trajectory)

        reason, template = outcome
        turbulence = parse_turbulence_forecast(ctx.state.flight.turbulence_forecast)
        message = render_proactive_message(template, ctx.state, turbulence=turbulence)
        logger.info(f"Proactive intervention: {reason.value} -> {template.value}")
        return ProactiveInterventionDecision(
            intervene=True,
            reason=reason,
            message_template=template,
            message=message,
            trajectory=ctx.trajectory,
        )
