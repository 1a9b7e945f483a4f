"""Calming-tool candidates and their multi-criteria ranking.

Each candidate is scored on immediate relief, skill building, sense of
agency and meta-anxiety risk. The weighting follows the predicted trajectory:
a likely spike buys fast relief and punishes risk, a likely calm invests in
skill building.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from otie.data.schema import InterventionCandidate, PredictedTrajectory, ResponsePattern, UserState
from otie.utils.config import EngineConfig
from otie.utils.mappings import FlightPhase, ToolCode, ToolUrgency

logger = logging.getLogger(__name__)

# Phases where a countdown to the next event is reassuring
COUNTDOWN_PHASES = (FlightPhase.DOOR_CLOSE, FlightPhase.TAKEOFF)


class InterventionRanker:
    """Generates, scores and picks calming tools for one moment."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    def generate_candidates(self, state: UserState) -> list[InterventionCandidate]:
        anxiety = state.anxiety_level
        phase = state.flight.phase
        effective_tools = state.history.effective_tools

        candidates = [
            InterventionCandidate(
                tool_code=ToolCode.BREATHING_478.value,
                immediate_relief=0.9 if anxiety >= 5 else 0.6,
                skill_building=0.7,
                agency=0.9,
                meta_anxiety_risk=0.1,
            )
        ]

        if ToolCode.PHYSIOLOGICAL_SIGH.value in effective_tools:
            candidates.append(InterventionCandidate(
                tool_code=ToolCode.PHYSIOLOGICAL_SIGH.value,
                immediate_relief=0.9,
                skill_building=0.6,
                agency=0.9,
                meta_anxiety_risk=0.1,
            ))

        if phase in COUNTDOWN_PHASES:
            candidates.append(InterventionCandidate(
                tool_code=ToolCode.COUNTDOWN_TIMER.value,
                immediate_relief=0.7 if anxiety >= 6 else 0.5,
                skill_building=0.5,
                agency=0.8,
                meta_anxiety_risk=0.15,
            ))

        if state.cognition.control_seeking and anxiety <= 6:
            candidates.append(InterventionCandidate(
                tool_code=ToolCode.EDUCATION.value,
                immediate_relief=0.5,
                skill_building=0.9,
                agency=0.8,
                meta_anxiety_risk=0.2,
            ))

        # Zero-risk fallback: validate and offer nothing
        candidates.append(InterventionCandidate(
            tool_code=ToolCode.VALIDATION_ONLY.value,
            immediate_relief=0.6,
            skill_building=0.5,
            agency=1.0,
            meta_anxiety_risk=0.05,
        ))
        return candidates

    def score(self, candidate: InterventionCandidate, trajectory: PredictedTrajectory) -> float:
        w = self.config.weights_for(trajectory.outcome)
        return (
            w.relief * candidate.immediate_relief
            + w.skill * candidate.skill_building
            + w.agency * candidate.agency
            - w.risk * candidate.meta_anxiety_risk
        )

    def rank(self, state: UserState, trajectory: PredictedTrajectory) -> list[InterventionCandidate]:
        """Candidates with ``overall_score`` filled in, best first.

        The sort is stable, so equal scores keep generation order.
        """
        scored = [
            replace(c, overall_score=self.score(c, trajectory))
            for c in self.generate_candidates(state)
        ]
        ranked = sorted(scored, key=lambda c: c.overall_score, reverse=True)
        logger.debug(
            f"Ranked for {trajectory.outcome.value}: "
            + ", ".join(f"{c.tool_code}={c.overall_score:.3f}" for c in ranked)
        )
        return ranked

    def pick(self, ranked: list[InterventionCandidate], pattern: ResponsePattern) -> str | None:
        """Top candidate's code, or None when the pattern only offers on request."""
        if pattern.tool is ToolUrgency.IF_REQUESTED or not ranked:
            return None
        return ranked[0].tool_code

    def should_auto_launch(self, pattern: ResponsePattern, anxiety: float) -> bool:
        """Launch without asking only at immediate urgency and very high anxiety."""
        return pattern.tool is ToolUrgency.IMMEDIATE and anxiety >= self.config.auto_launch_anxiety


def select_tool(state: UserState, pattern: ResponsePattern) -> str | None:
    """Single deterministic tool choice from effectiveness history.

    Simpler than ranking: immediate urgency always means 4-7-8 breathing,
    high anxiety prefers a proven physiological sigh, moderate anxiety uses a
    countdown during door-close and takeoff.
    """
    if pattern.tool is ToolUrgency.IMMEDIATE:
        return ToolCode.BREATHING_478.value
    if pattern.tool is ToolUrgency.IF_REQUESTED:
        return None

    anxiety = state.anxiety_level
    if anxiety >= 7:
        if ToolCode.PHYSIOLOGICAL_SIGH.value in state.history.effective_tools:
            return ToolCode.PHYSIOLOGICAL_SIGH.value
        return ToolCode.BREATHING_478.value

    if anxiety >= 4:
        if state.flight.phase in COUNTDOWN_PHASES:
            return ToolCode.COUNTDOWN_TIMER.value
        return ToolCode.BREATHING_478.value

    if state.cognition.control_seeking:
        return ToolCode.EDUCATION.value
    return None
