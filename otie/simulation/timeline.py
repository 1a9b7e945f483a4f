"""Flight timelines: the per-tick input the replay harness walks through.

A timeline is a DataFrame with one row per monitoring tick. Rows carry the
flight phase, the user's self-reported anxiety, an optional heart rate and an
optional user message. Timelines come from a recorded session CSV or from
the demo flight generator.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from otie.utils.mappings import FlightPhase

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["elapsed_seconds", "phase", "anxiety"]
OPTIONAL_COLUMNS = {
    "heart_rate": np.nan,
    "message": "",
    "turbulence_forecast": "none",
}

# (phase, duration seconds, baseline anxiety)
DEMO_PHASES: list[tuple[FlightPhase, int, float]] = [
    (FlightPhase.BOARDING, 900, 4.0),
    (FlightPhase.DOOR_CLOSE, 300, 6.0),
    (FlightPhase.PUSHBACK, 180, 5.5),
    (FlightPhase.TAXI, 600, 5.5),
    (FlightPhase.TAKEOFF, 120, 8.0),
    (FlightPhase.CLIMB, 900, 6.5),
    (FlightPhase.CRUISE, 3600, 4.0),
    (FlightPhase.DESCENT, 1200, 6.5),
    (FlightPhase.LANDING, 300, 7.0),
    (FlightPhase.LANDED, 300, 2.5),
]

# Messages sent on the first tick of a phase
DEMO_MESSAGES: dict[FlightPhase, str] = {
    FlightPhase.BOARDING: "ok I'm on the plane. trying to stay calm",
    FlightPhase.DOOR_CLOSE: "the door just closed and I feel trapped",
    FlightPhase.TAKEOFF: "what was that loud noise??",
    FlightPhase.CRUISE: "how does the wing not snap when it bends like that?",
    FlightPhase.DESCENT: "why does it feel like we're dropping",
    FlightPhase.LANDED: "we made it. thank you",
}

DEMO_TURBULENCE_WINDOW = (1200, 1800)  # seconds into cruise with a forecast


def generate_demo_flight(
    tick_seconds: int = 60,
    seed: int | None = 42,
    resting_heart_rate: float = 72.0,
) -> pd.DataFrame:
    """Build a synthetic but plausible anxious-flyer session.

    Anxiety follows a per-phase baseline with a ramp into each phase and
    small Gaussian noise; heart rate tracks anxiety. A turbulence forecast is
    announced partway through cruise.

    Args:
        tick_seconds: Spacing between rows.
        seed: RNG seed; None for a different flight every call.
        resting_heart_rate: Heart rate at anxiety 0.

    Returns:
        Timeline DataFrame (see ``REQUIRED_COLUMNS``).
    """
    rng = np.random.default_rng(seed)
    rows = []
    elapsed = 0
    previous_baseline = DEMO_PHASES[0][2]

    for phase, duration, baseline in DEMO_PHASES:
        n_ticks = max(1, duration // tick_seconds)
        ramp = np.linspace(previous_baseline, baseline, num=min(n_ticks, 4))
        for i in range(n_ticks):
            level = ramp[i] if i < len(ramp) else baseline
            anxiety = float(np.clip(level + rng.normal(0.0, 0.3), 0.0, 10.0))
            heart_rate = resting_heart_rate + 4.0 * anxiety + rng.normal(0.0, 1.5)
            time_in_phase = i * tick_seconds

            forecast = "none"
            if phase is FlightPhase.CRUISE:
                start, end = DEMO_TURBULENCE_WINDOW
                if start <= time_in_phase < end:
                    minutes_ahead = max(0, (end - time_in_phase) // 60 - 5)
                    forecast = f"moderate_in_{minutes_ahead}min" if minutes_ahead else "moderate"

            rows.append({
                "elapsed_seconds": elapsed,
                "phase": phase.value,
                "time_in_phase": time_in_phase,
                "time_to_next_event": duration - time_in_phase,
                "anxiety": round(anxiety, 1),
                "heart_rate": round(float(heart_rate), 1),
                "message": DEMO_MESSAGES.get(phase, "") if i == 0 else "",
                "turbulence_forecast": forecast,
            })
            elapsed += tick_seconds
        previous_baseline = baseline

    df = pd.DataFrame(rows)
    logger.info(f"Generated demo flight: {len(df)} ticks, {elapsed // 60} minutes")
    return df


def prepare_timeline(df: pd.DataFrame) -> pd.DataFrame:
    """Validate a timeline and fill in derived and optional columns.

    Raises:
        ValueError: if a required column is missing or a phase is unknown.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Timeline is missing required columns: {', '.join(missing)}")

    df = df.copy().sort_values("elapsed_seconds", kind="stable").reset_index(drop=True)
    for column, default in OPTIONAL_COLUMNS.items():
        if column not in df.columns:
            df[column] = default
    df["message"] = df["message"].fillna("").astype(str)
    df["turbulence_forecast"] = df["turbulence_forecast"].fillna("none").astype(str)

    known = {p.value for p in FlightPhase}
    unknown = sorted(set(df["phase"].astype(str)) - known)
    if unknown:
        raise ValueError(f"Unknown flight phases in timeline: {', '.join(unknown)}")

    # Phase clocks, when the recording did not carry them
    phase_start = df.groupby((df["phase"] != df["phase"].shift()).cumsum())["elapsed_seconds"]
    if "time_in_phase" not in df.columns:
        df["time_in_phase"] = df["elapsed_seconds"] - phase_start.transform("min")
    if "time_to_next_event" not in df.columns:
        df["time_to_next_event"] = phase_start.transform("max") - df["elapsed_seconds"]
    return df


def load_session_csv(path: Path) -> pd.DataFrame:
    """Load a recorded session timeline from CSV."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Session file not found: {path}")
    df = pd.read_csv(path, keep_default_na=True)
    logger.info(f"Loaded session {path.name}: {len(df)} ticks")
    return prepare_timeline(df)
