"""FlightReplay: drives the engine through a whole flight timeline.

Plays the caller's role: keeps the rolling user state, appends every tick's
anxiety and heart-rate readings to the history buffers, sends user messages
through ``Engine.process_message`` and runs the proactive monitor on silent
ticks. Proactive interventions and conversation counters are accumulated the
way a live client would, so rate limits and escalation rules see a realistic
state.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import pandas as pd
from tqdm import tqdm

from otie.data.schema import Biometrics, ReadingHistory, UserState
from otie.engine import Engine
from otie.sense.derivatives import anxiety_state, effective_anxiety
from otie.utils.mappings import FlightPhase, parse_enum

logger = logging.getLogger(__name__)

DEFAULT_START = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


def _cell(row: pd.Series, column: str) -> Any:
    value = row.get(column)
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


class FlightReplay:
    """Replays one timeline for one user."""

    def __init__(self, engine: Engine | None = None, base_state: UserState | None = None) -> None:
        self.engine = engine or Engine()
        self.base_state = base_state or UserState()

    def _initial_state(self) -> UserState:
        state = copy.deepcopy(self.base_state)
        limit = self.engine.config.history_limit
        state.anxiety_history = ReadingHistory(state.anxiety_history, maxlen=limit)
        if state.biometrics is not None:
            state.biometrics.heart_rate_history = ReadingHistory(
                state.biometrics.heart_rate_history, maxlen=limit,
            )
        return state

    def _apply_tick(self, state: UserState, row: pd.Series, now: datetime, last_message_at: datetime | None) -> None:
        anxiety = _cell(row, "anxiety")
        if anxiety is not None:
            state.anxiety_level = float(anxiety)
            state.anxiety_history.append(float(anxiety), now)

        heart_rate = _cell(row, "heart_rate")
        if heart_rate is not None:
            if state.biometrics is None:
                state.biometrics = Biometrics(
                    heart_rate_history=ReadingHistory(maxlen=self.engine.config.history_limit),
                )
            state.biometrics.heart_rate = float(heart_rate)
            state.biometrics.heart_rate_history.append(float(heart_rate), now)

        flight = state.flight
        flight.phase = parse_enum(FlightPhase, _cell(row, "phase"))
        flight.time_in_phase = float(_cell(row, "time_in_phase") or 0.0)
        time_to_next = _cell(row, "time_to_next_event")
        flight.time_to_next_event = float(time_to_next) if time_to_next is not None else None
        flight.turbulence_forecast = str(_cell(row, "turbulence_forecast") or "none")

        if last_message_at is not None:
            state.behavior.time_since_last_message = (now - last_message_at).total_seconds()

    def run(
        self,
        timeline: pd.DataFrame,
        start: datetime = DEFAULT_START,
        show_progress: bool = True,
    ) -> list[dict]:
        """Replay every tick; returns one flat record per tick.

        Args:
            timeline: Prepared timeline (see ``otie.simulation.timeline``).
            start: Wall-clock time of the first tick.
            show_progress: Show a tqdm progress bar.
        """
        state = self._initial_state()
        last_message_at: datetime | None = None
        records = []

        rows = timeline.iterrows()
        if show_progress:
            rows = tqdm(rows, total=len(timeline), desc="Replaying flight", unit="tick")

        for _, row in rows:
            now = start + timedelta(seconds=float(row["elapsed_seconds"]))
            self._apply_tick(state, row, now, last_message_at)
            message = str(_cell(row, "message") or "").strip()

            if message:
                record = self._handle_message(state, message, now)
                last_message_at = now
                state.behavior.time_since_last_message = 0.0
            else:
                record = self._handle_tick(state)

            record.update({
                "elapsed_seconds": float(row["elapsed_seconds"]),
                "timestamp": now.isoformat(),
                "phase": state.flight.phase.value if state.flight.phase else None,
                "turbulence_forecast": state.flight.turbulence_forecast,
                "heart_rate": state.biometrics.heart_rate if state.biometrics else None,
            })
            records.append(record)

        logger.info(
            f"Replay done: {len(records)} ticks, "
            f"{state.proactive_interventions_count} proactive interventions, "
            f"{state.conversation.messages_in_session} messages"
        )
        return records

    # ------------------------------------------------------------------
    # Per-tick handlers
    # ------------------------------------------------------------------

    def _handle_message(self, state: UserState, message: str, now: datetime) -> dict:
        output = self.engine.process_message(message, state, now=now)

        conv = state.conversation
        conv.messages_in_session += 1
        conv.last_message_text = message
        conv.last_otie_mode = output.mode
        if output.tool_offered is not None:
            conv.tools_offered += 1
            conv.otie_interventions += 1
        if output.tool_launched:
            conv.tools_accepted += 1
        # A reply with no tool, no handoff and no crisis is plain reassurance.
        if output.tool_offered is None and not output.escalate and not output.crisis:
            conv.reassurance_attempts += 1
        if output.escalate:
            state.history.charlie_handoff_history += 1

        record = self._signal_fields(state, output.anxiety_rate)
        record.update({
            "event": "message",
            "message": message,
            "mode": output.mode.value,
            "tool_offered": output.tool_offered,
            "tool_launched": output.tool_launched,
            "intervention": output.intervention,
            "escalate": output.escalate,
            "escalation_reason": output.escalation_reason.value if output.escalation_reason else None,
            "crisis": output.crisis,
            "aviation_trigger": output.aviation_trigger,
            "trajectory": output.trajectory.outcome.value if output.trajectory else None,
            "anxiety_rate": output.anxiety_rate,
            "hr_rate": output.hr_rate,
            "proactive": False,
            "proactive_reason": None,
            "proactive_message": None,
        })
        return record

    def _handle_tick(self, state: UserState) -> dict:
        ctx = self.engine.build_context(state, message="")
        decision = self.engine.proactive_monitor.check(ctx)
        if decision.intervene:
            state.proactive_interventions_count += 1
            state.conversation.otie_interventions += 1

        record = self._signal_fields(state, ctx.derivatives.anxiety.ddt, ctx.derivatives.anxiety.d2dt2)
        record.update({
            "event": "tick",
            "message": "",
            "mode": None,
            "tool_offered": None,
            "tool_launched": False,
            "intervention": None,
            "escalate": False,
            "escalation_reason": None,
            "crisis": False,
            "aviation_trigger": False,
            "trajectory": decision.trajectory.outcome.value if decision.trajectory else None,
            "anxiety_rate": ctx.derivatives.anxiety.ddt,
            "hr_rate": ctx.derivatives.heart_rate.ddt,
            "proactive": decision.intervene,
            "proactive_reason": decision.reason.value if decision.reason else None,
            "proactive_message": decision.message,
        })
        return record

    def _signal_fields(self, state: UserState, velocity: float, acceleration: float = 0.0) -> dict:
        anxiety = state.anxiety_level if state.anxiety_level is not None else self.engine.config.default_anxiety
        return {
            "anxiety": anxiety,
            "anxiety_state": anxiety_state(anxiety),
            "effective_anxiety": effective_anxiety(anxiety, velocity, acceleration),
        }
