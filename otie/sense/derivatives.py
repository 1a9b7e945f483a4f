"""Rate-of-change analysis over anxiety and heart-rate histories.

First and second derivatives are finite differences over the three most
recent readings, expressed per minute. Elapsed time comes from the readings'
timestamps when both ends carry one and time moves forward between them;
otherwise the configured sampling interval is assumed.
"""

from __future__ import annotations

import logging

import numpy as np

from otie.data.schema import Derivatives, Reading, ReadingHistory, SignalDerivative, UserState
from otie.utils.config import EngineConfig
from otie.utils.mappings import ANXIETY_STATE_BANDS, Trend

logger = logging.getLogger(__name__)

MIN_SAMPLES = 3


def _elapsed_minutes(earlier: Reading, later: Reading, interval_minutes: float) -> float:
    if earlier.timestamp is None or later.timestamp is None:
        return interval_minutes
    try:
        seconds = (later.timestamp - earlier.timestamp).total_seconds()
    except TypeError:
        # naive vs. aware timestamps
        return interval_minutes
    if seconds <= 0:
        return interval_minutes
    return seconds / 60.0


def classify_trend(rate: float, threshold: float) -> Trend:
    if rate > threshold:
        return Trend.RISING
    if rate < -threshold:
        return Trend.FALLING
    return Trend.STABLE


def signal_derivative(
    history: ReadingHistory,
    threshold: float,
    interval_seconds: float = 60.0,
    value: float | None = None,
) -> SignalDerivative:
    """Differentiate one signal history.

    Args:
        history: Readings, oldest first.
        threshold: Rate (per minute) beyond which the trend is rising/falling.
        interval_seconds: Assumed spacing for readings without timestamps.
        value: Current value to report; defaults to the latest reading.

    Returns:
        SignalDerivative with zero rates and a stable trend when fewer than
        three readings are available.
    """
    readings = history.readings()
    if value is None and readings:
        value = readings[-1].value
    if len(readings) < MIN_SAMPLES:
        return SignalDerivative(value=value)

    interval_minutes = interval_seconds / 60.0
    r0, r1, r2 = readings[-3:]
    values = np.array([r0.value, r1.value, r2.value], dtype=float)
    elapsed = np.array([
        _elapsed_minutes(r0, r1, interval_minutes),
        _elapsed_minutes(r1, r2, interval_minutes),
    ])

    first = np.diff(values) / elapsed
    ddt = float(first[-1])
    d2dt2 = float((first[-1] - first[-2]) / elapsed.mean())

    return SignalDerivative(
        value=value,
        ddt=ddt,
        d2dt2=d2dt2,
        trend=classify_trend(ddt, threshold),
        has_signal=True,
    )


def calculate_derivatives(state: UserState, config: EngineConfig | None = None) -> Derivatives:
    """Compute anxiety and heart-rate derivatives for a (normalized) state."""
    config = config or EngineConfig()

    anxiety_history = state.anxiety_history
    anxiety_value = anxiety_history.latest().value if len(anxiety_history) else state.anxiety_level
    anxiety = signal_derivative(
        anxiety_history,
        threshold=config.anxiety_trend_threshold,
        interval_seconds=config.sampling_interval_seconds,
        value=anxiety_value,
    )

    bio = state.biometrics
    if bio is None or not len(bio.heart_rate_history):
        # No signal: value stays None so nobody reads it as 0 bpm.
        heart_rate = SignalDerivative(value=None)
    else:
        heart_rate = signal_derivative(
            bio.heart_rate_history,
            threshold=config.heart_rate_trend_threshold,
            interval_seconds=config.sampling_interval_seconds,
            value=bio.heart_rate,
        )

    logger.debug(
        f"Derivatives: anxiety ddt={anxiety.ddt:.2f} d2dt2={anxiety.d2dt2:.2f} ({anxiety.trend.value}), "
        f"hr ddt={heart_rate.ddt:.2f} ({heart_rate.trend.value})"
    )
    return Derivatives(anxiety=anxiety, heart_rate=heart_rate)


def effective_trend(state: UserState, derivatives: Derivatives) -> Trend:
    """Computed anxiety trend, or the caller-reported one when history is short."""
    if derivatives.anxiety.has_signal:
        return derivatives.anxiety.trend
    return state.anxiety_trend


def effective_rate(state: UserState, derivatives: Derivatives) -> float:
    """Computed anxiety rate, or the caller-reported one when history is short."""
    if derivatives.anxiety.has_signal:
        return derivatives.anxiety.ddt
    return state.anxiety_rate_of_change


def effective_anxiety(current: float, velocity: float, acceleration: float) -> float:
    """Anxiety adjusted upward for fast or accelerating climbs, clamped to [0, 10]."""
    effective = current
    if velocity > 1.5:
        effective += 1
    if velocity > 2.5:
        effective += 2
    if acceleration > 0.5:
        effective = max(effective, 8.0)
    return min(10.0, max(0.0, effective))


def anxiety_state(level: float) -> str:
    """Label an anxiety level: grounded, alert, elevated, acute or crisis."""
    for upper, label in ANXIETY_STATE_BANDS:
        if level <= upper:
            return label
    return ANXIETY_STATE_BANDS[-1][1]
