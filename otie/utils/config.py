"""YAML configuration loading with environment variable resolution.

Every policy constant the engine uses (anxiety bands, derivative thresholds,
phrase lists, rate limits, ranking weights) lives on ``EngineConfig`` so a
deployment can retune it without code changes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from otie.utils.mappings import (
    DEFAULT_PHRASES,
    FlightPhase,
    Mode,
    PhraseSet,
    TrajectoryOutcome,
    parse_enum,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "OTIE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "configs" / "engine.yaml"


def load_config(config_path: Path) -> dict:
    """Load a YAML config file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        Parsed config dict (empty dict for an empty file).
    """
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def load_all_configs(config_dir: Path) -> dict[str, dict]:
    """Load all YAML configs from the config directory.

    Returns:
        Dict with config name (without extension) as key.
    """
    configs = {}
    for path in config_dir.glob("*.yaml"):
        configs[path.stem] = load_config(path)
    return configs


def resolve_env_vars(config: dict) -> dict:
    """Resolve environment variable references in config values.

    Keys ending with '_env' are treated as env var names and resolved into
    the same key without the suffix. Unset variables leave the key out, so
    the dataclass default applies.
    """
    resolved: dict = {}
    for key, value in config.items():
        if isinstance(value, dict):
            resolved[key] = resolve_env_vars(value)
        elif isinstance(key, str) and key.endswith("_env"):
            env_value = os.environ.get(str(value))
            if env_value is None:
                logger.debug(f"Env var {value} not set; leaving {key[:-4]} at default")
                continue
            resolved[key[:-4]] = yaml.safe_load(env_value)
        else:
            resolved[key] = value
    return resolved


@dataclass(frozen=True)
class ScoreWeights:
    """Composite-score weights for one predicted trajectory.

    ``risk`` is subtracted, so it is given as a positive magnitude.
    """

    relief: float
    skill: float
    agency: float
    risk: float


def _default_weights() -> dict[TrajectoryOutcome, ScoreWeights]:
    return {
        TrajectoryOutcome.LIKELY_SPIKE: ScoreWeights(relief=0.5, skill=0.2, agency=0.2, risk=0.2),
        TrajectoryOutcome.LIKELY_PLATEAU: ScoreWeights(relief=0.3, skill=0.3, agency=0.3, risk=0.1),
        TrajectoryOutcome.LIKELY_CALM: ScoreWeights(relief=0.2, skill=0.4, agency=0.3, risk=0.1),
    }


def _default_phrases() -> dict[PhraseSet, tuple[str, ...]]:
    return dict(DEFAULT_PHRASES)


@dataclass(frozen=True)
class EngineConfig:
    """Tunable policy for the emotional state engine."""

    # Normalization
    default_anxiety: float = 5.0
    default_mode: Mode = Mode.CLASSIC
    history_limit: int = 20

    # Derivatives
    sampling_interval_seconds: float = 60.0
    anxiety_trend_threshold: float = 0.5      # points / minute
    heart_rate_trend_threshold: float = 2.0   # bpm / minute

    # Trajectory
    trajectory_window_seconds: int = 180
    spike_rate: float = 1.0
    rising_rate: float = 0.5
    calm_rate: float = -0.5
    descent_dread_seconds: float = 600.0
    descent_dread_anxiety: float = 6.0

    # Anxiety bands (mode selection + response pattern)
    panic_anxiety: float = 9.0
    high_anxiety: float = 7.0
    moderate_anxiety: float = 4.0

    # Personalization
    youth_age: int = 16
    archetype_dominance: float = 70.0
    terse_message_length: float = 15.0

    # Tool selection
    auto_launch_anxiety: float = 8.0
    ranking_weights: dict[TrajectoryOutcome, ScoreWeights] = field(default_factory=_default_weights)

    # Escalation
    sustained_anxiety_level: float = 8.0
    sustained_anxiety_floor: float = 7.0
    sustained_seconds: float = 300.0
    tools_offered_min: int = 2
    tools_accepted_min: int = 1
    reassurance_attempts_min: int = 3
    reassurance_anxiety: float = 7.0

    # Proactive monitor
    proactive_rate_limit: int = 5
    proactive_anxiety_spike: float = 1.0     # points / minute
    proactive_heart_rate_spike: float = 5.0  # bpm / minute
    silence_seconds: float = 300.0
    hard_phases: tuple[FlightPhase, ...] = (FlightPhase.DOOR_CLOSE, FlightPhase.DESCENT)
    trigger_lead_seconds: dict[str, float] = field(
        default_factory=lambda: {"door_close": 120.0, "takeoff": 180.0}
    )
    default_trigger_lead_seconds: float = 120.0
    turbulence_lead_minutes: float = 10.0
    turbulence_min_severity: str = "moderate"
    predicted_spike_min_anxiety: float = 4.0

    # Learning
    effective_anxiety_drop: float = 2.0

    # Message cues
    phrases: dict[PhraseSet, tuple[str, ...]] = field(default_factory=_default_phrases)

    @classmethod
    def from_dict(cls, data: dict | None) -> EngineConfig:
        """Build a config from a (possibly sectioned) dict, e.g. parsed YAML.

        Top-level keys may be field names or section names whose values are
        dicts of field names; sections are flattened. ``phrases`` and
        ``ranking_weights`` are merged over the defaults, so a file only has
        to name the lists it overrides.

        Raises:
            ValueError: on unknown keys or values of the wrong shape.
        """
        flat = _flatten(resolve_env_vars(data or {}))
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(flat) - known)
        if unknown:
            raise ValueError(f"Unknown engine config keys: {', '.join(unknown)}")

        base = cls()
        kwargs: dict[str, Any] = {}
        for key, value in flat.items():
            if key == "phrases":
                kwargs[key] = _merge_phrases(base.phrases, value)
            elif key == "ranking_weights":
                kwargs[key] = _merge_weights(base.ranking_weights, value)
            elif key == "default_mode":
                mode = parse_enum(Mode, value)
                if mode is None:
                    raise ValueError(f"Unknown default_mode: {value!r}")
                kwargs[key] = mode
            elif key == "hard_phases":
                kwargs[key] = _parse_phases(value)
            elif key == "trigger_lead_seconds":
                kwargs[key] = {str(k): float(v) for k, v in dict(value).items()}
            else:
                kwargs[key] = value
        return replace(base, **kwargs)

    def phrases_for(self, phrase_set: PhraseSet) -> tuple[str, ...]:
        return self.phrases.get(phrase_set, ())

    def weights_for(self, outcome: TrajectoryOutcome) -> ScoreWeights:
        return self.ranking_weights[outcome]


def _flatten(data: dict) -> dict:
    # Dict-valued fields must not be mistaken for sections.
    dict_fields = {"phrases", "ranking_weights", "trigger_lead_seconds"}
    flat: dict = {}
    for key, value in data.items():
        if isinstance(value, dict) and key not in dict_fields:
            flat.update(value)
        else:
            flat[key] = value
    return flat


def _merge_phrases(defaults: dict, overrides: Any) -> dict[PhraseSet, tuple[str, ...]]:
    if not isinstance(overrides, dict):
        raise ValueError("phrases must be a mapping of phrase set name to list of phrases")
    merged = dict(defaults)
    for name, phrases in overrides.items():
        phrase_set = parse_enum(PhraseSet, name)
        if phrase_set is None:
            raise ValueError(f"Unknown phrase set: {name!r}")
        merged[phrase_set] = tuple(str(p).lower() for p in (phrases or []))
    return merged


def _merge_weights(defaults: dict, overrides: Any) -> dict[TrajectoryOutcome, ScoreWeights]:
    if not isinstance(overrides, dict):
        raise ValueError("ranking_weights must be a mapping of trajectory outcome to weights")
    merged = dict(defaults)
    for name, weights in overrides.items():
        outcome = parse_enum(TrajectoryOutcome, name)
        if outcome is None:
            raise ValueError(f"Unknown trajectory outcome: {name!r}")
        current = merged[outcome]
        try:
            merged[outcome] = replace(current, **{k: float(v) for k, v in dict(weights).items()})
        except TypeError as e:
            raise ValueError(f"Bad weights for {name}: {e}") from e
    return merged


def _parse_phases(values: Any) -> tuple[FlightPhase, ...]:
    phases = []
    for value in values or []:
        phase = parse_enum(FlightPhase, value)
        if phase is None:
            raise ValueError(f"Unknown flight phase: {value!r}")
        phases.append(phase)
    return tuple(phases)


def load_engine_config(config_path: Path | None = None) -> EngineConfig:
    """Load the engine config from YAML.

    Resolution order: explicit path, then the ``OTIE_CONFIG`` env var,
    then built-in defaults.

    Raises:
        FileNotFoundError: if an explicitly named file does not exist.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return EngineConfig()
        config_path = Path(env_path)
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Engine config not found: {config_path}")
    logger.info(f"Loading engine config from {config_path}")
    return EngineConfig.from_dict(load_config(config_path))
