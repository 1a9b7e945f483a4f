"""Emotional state engine: one decision per user message or timer tick.

Pipeline per message::

    normalize -> derivatives -> time axes -> trajectory -> crisis gate
      -> mode -> response pattern -> escalation -> tool ranking

The engine holds only immutable configuration. It never mutates the state it
is given; callers own the history buffers and the proactive counter and
update them between calls.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from otie.act.escalation import EscalationDecider
from otie.act.interventions import InterventionRanker
from otie.act.proactive import ProactiveMonitor
from otie.data.schema import EngineOutput, ProactiveInterventionDecision, UserState
from otie.sense import PhraseMatcher, build_time_axes, calculate_derivatives, normalize_state
from otie.think.context import DecisionContext
from otie.think.crisis import CrisisDetector
from otie.think.mode_selector import ModeSelector
from otie.think.response_pattern import select_response_pattern
from otie.think.trajectory import TrajectoryPredictor
from otie.utils.config import EngineConfig
from otie.utils.mappings import Mode, PhraseSet, ToolCode

logger = logging.getLogger(__name__)


class Engine:
    """Stateless decision engine bound to one configuration."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.matcher = PhraseMatcher(self.config)
        self.crisis_detector = CrisisDetector(self.config, matcher=self.matcher)
        self.trajectory_predictor = TrajectoryPredictor(self.config)
        self.mode_selector = ModeSelector()
        self.escalation_decider = EscalationDecider()
        self.ranker = InterventionRanker(self.config)
        self.proactive_monitor = ProactiveMonitor()

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def build_context(self, state: UserState, message: str | None = None) -> DecisionContext:
        """Normalize ``state`` and derive every signal the rules look at.

        When ``message`` is None the state's last message text is used.
        """
        state = normalize_state(state, self.config)
        if message is None:
            message = state.conversation.last_message_text
        else:
            state.conversation.last_message_text = message

        derivatives = calculate_derivatives(state, self.config)
        time_axes = build_time_axes(state)
        trajectory = self.trajectory_predictor.predict(state, derivatives, time_axes)
        return DecisionContext(
            state=state,
            message=message or "",
            derivatives=derivatives,
            time_axes=time_axes,
            trajectory=trajectory,
            config=self.config,
            cues=self.matcher.scan(message),
            crisis=self.crisis_detector.detect(message),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_message(
        self,
        message: str | None,
        state: UserState,
        now: datetime | None = None,
    ) -> EngineOutput:
        """Decide how the companion should respond to a user message.

        Args:
            message: The user's latest message (may be empty).
            state: Caller-assembled user state; not modified.
            now: Timestamp to stamp on the output (defaults to now, UTC).

        Returns:
            EngineOutput with mode, response pattern, tool choice and
            escalation decision.
        """
        timestamp = now or datetime.now(timezone.utc)
        ctx = self.build_context(state, message)
        anxiety = ctx.anxiety
        derivatives = ctx.derivatives
        aviation_trigger = ctx.has_cue(PhraseSet.AVIATION_TRIGGER)

        if ctx.crisis:
            logger.info(f"Crisis protocol engaged (anxiety {anxiety:.1f})")
            return EngineOutput(
                mode=Mode.CRISIS_PROTOCOL,
                pattern=None,
                tool_offered=None,
                tool_launched=False,
                intervention=None,
                escalate=False,
                escalation_reason=None,
                escalation_message_type=None,
                crisis=True,
                anxiety_detected=anxiety,
                anxiety_rate=derivatives.anxiety.ddt,
                hr_rate=derivatives.heart_rate.ddt,
                trajectory=ctx.trajectory,
                aviation_trigger=aviation_trigger,
                proactive=False,
                timestamp=timestamp,
            )

        mode = self.mode_selector.select(ctx)
        pattern = select_response_pattern(anxiety, self.config)
        escalation = self.escalation_decider.decide(ctx)

        tool_offered = None
        tool_launched = False
        intervention = None
        if not escalation.escalate:
            ranked = self.ranker.rank(ctx.state, ctx.trajectory)
            intervention = self.ranker.pick(ranked, pattern)
            if intervention != ToolCode.VALIDATION_ONLY.value:
                tool_offered = intervention
            tool_launched = tool_offered is not None and self.ranker.should_auto_launch(pattern, anxiety)

        logger.debug(
            f"Decision: mode={mode.value} tool={tool_offered} launched={tool_launched} "
            f"trajectory={ctx.trajectory.outcome.value}"
        )
        return EngineOutput(
            mode=mode,
            pattern=pattern,
            tool_offered=tool_offered,
            tool_launched=tool_launched,
            intervention=intervention,
            escalate=escalation.escalate,
            escalation_reason=escalation.reason,
            escalation_message_type=escalation.message_type,
            crisis=False,
            anxiety_detected=anxiety,
            anxiety_rate=derivatives.anxiety.ddt,
            hr_rate=derivatives.heart_rate.ddt,
            trajectory=ctx.trajectory,
            aviation_trigger=aviation_trigger,
            proactive=False,
            timestamp=timestamp,
        )

    def check_proactive(
        self,
        state: UserState,
        now: datetime | None = None,
    ) -> ProactiveInterventionDecision:
        """Decide whether to reach out unprompted.

        The decision depends only on the state; ``now`` (default: current UTC
        time) is stamped on it.
        """
        ctx = self.build_context(state, message="")
        decision = self.proactive_monitor.check(ctx)
        return replace(decision, timestamp=now or datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Module-level convenience wrappers
# ---------------------------------------------------------------------------

_default_engine: Engine | None = None


def _get_default_engine() -> Engine:
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine


def emotional_state_engine(
    message: str | None,
    state: UserState,
    now: datetime | None = None,
) -> EngineOutput:
    """Evaluate one message with the default configuration."""
    return _get_default_engine().process_message(message, state, now=now)


def check_proactive_intervention(
    state: UserState,
    now: datetime | None = None,
) -> ProactiveInterventionDecision:
    """Run the proactive monitor with the default configuration."""
    return _get_default_engine().check_proactive(state, now=now)
