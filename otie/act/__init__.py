"""Action layer: tool ranking, escalation to a human, proactive check-ins."""

from otie.act.escalation import EscalationDecider
from otie.act.interventions import InterventionRanker, select_tool
from otie.act.proactive import ProactiveMonitor

__all__ = [
    "EscalationDecider",
    "InterventionRanker",
    "ProactiveMonitor",
    "select_tool",
]
