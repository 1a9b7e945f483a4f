"""Relative clocks derived from the flight context."""

from __future__ import annotations

from otie.data.schema import TimeAxes, UserState


def build_time_axes(state: UserState) -> TimeAxes:
    """Build phase-relative and journey-relative clocks.

    ``flight.time_in_phase`` is taken as seconds since entering the current
    phase and ``flight_count`` as the number of flights already completed.
    Seconds since takeoff is not derivable from the snapshot, so
    ``flight_relative_t`` stays None.
    """
    return TimeAxes(
        phase_relative_t=state.flight.time_in_phase,
        journey_flight_index=max(0, state.flight_count) + 1,
        flight_relative_t=None,
    )
