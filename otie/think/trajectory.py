"""Short-horizon anxiety trajectory prediction.

Forecasts, over the next ~3 minutes, whether anxiety is likely to spike,
plateau or calm down. The upward-movement rule is evaluated before the
descent-dread rule, so an active downward trend during descent is never
read as a spike.
"""

from __future__ import annotations

from dataclasses import dataclass

from otie.data.schema import Derivatives, PredictedTrajectory, TimeAxes, UserState
from otie.think.rules import Rule, RuleCascade
from otie.utils.config import EngineConfig
from otie.utils.mappings import FlightPhase, TrajectoryOutcome


@dataclass(frozen=True)
class _Inputs:
    anxiety: float
    rate: float
    accel: float
    phase: FlightPhase | None
    phase_t: float | None
    config: EngineConfig


class TrajectoryPredictor:
    """Rule cascade over anxiety derivatives, flight phase and time in phase."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        window = self.config.trajectory_window_seconds

        def outcome(kind: TrajectoryOutcome, confidence: float, rule: str):
            return lambda _: PredictedTrajectory(kind, confidence, window, rule)

        self.cascade: RuleCascade[_Inputs, PredictedTrajectory] = RuleCascade(
            "trajectory",
            [
                Rule(
                    "strong_upward",
                    lambda i: i.rate >= i.config.spike_rate
                    or (i.rate > i.config.rising_rate and i.accel > 0),
                    outcome(TrajectoryOutcome.LIKELY_SPIKE, 0.7, "strong_upward"),
                ),
                Rule(
                    "clear_downward",
                    lambda i: i.rate <= i.config.calm_rate,
                    outcome(TrajectoryOutcome.LIKELY_CALM, 0.6, "clear_downward"),
                ),
                Rule(
                    "descent_dread",
                    lambda i: i.phase is FlightPhase.DESCENT
                    and i.phase_t is not None
                    and i.phase_t > i.config.descent_dread_seconds
                    and i.anxiety >= i.config.descent_dread_anxiety
                    and i.rate >= 0,
                    outcome(TrajectoryOutcome.LIKELY_SPIKE, 0.65, "descent_dread"),
                ),
            ],
            default=outcome(TrajectoryOutcome.LIKELY_PLATEAU, 0.5, "default"),
        )

    def predict(
        self,
        state: UserState,
        derivatives: Derivatives,
        time_axes: TimeAxes,
    ) -> PredictedTrajectory:
        inputs = _Inputs(
            anxiety=state.anxiety_level,
            rate=derivatives.anxiety.ddt,
            accel=derivatives.anxiety.d2dt2,
            phase=state.flight.phase,
            phase_t=time_axes.phase_relative_t,
            config=self.config,
        )
        return self.cascade.evaluate(inputs).outcome


def predict_trajectory(
    state: UserState,
    derivatives: Derivatives,
    time_axes: TimeAxes,
    config: EngineConfig | None = None,
) -> PredictedTrajectory:
    return TrajectoryPredictor(config).predict(state, derivatives, time_axes)
