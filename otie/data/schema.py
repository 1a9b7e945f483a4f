"""Dataclass definitions for structured data objects.

Defines the user-state snapshot the caller assembles before every engine
call, the intermediate signals the engine derives from it, and the decision
records it returns. ``from_dict`` constructors accept loosely-typed JSON and
never raise; bad values become None and are defaulted by the normalizer.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Iterator

from otie.utils.mappings import (
    ARCHETYPE_TRAITS,
    CharlieMessageType,
    EscalationReason,
    FlightPhase,
    MessageTemplate,
    Mode,
    ProactiveReason,
    ToolUrgency,
    TrajectoryOutcome,
    Trend,
    parse_enum,
)

DEFAULT_HISTORY_LIMIT = 20


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _safe_float(val: Any) -> float | None:
    """Return float or None; silently absorbs NaN and conversion errors."""
    if val is None or isinstance(val, bool):
        return None
    try:
        f = float(val)
        return None if math.isnan(f) else f
    except (TypeError, ValueError):
        return None


def _safe_int(val: Any) -> int | None:
    f = _safe_float(val)
    return None if f is None or math.isinf(f) else int(f)


def _safe_bool(val: Any) -> bool:
    if isinstance(val, str):
        return val.strip().lower() in ("true", "yes", "1")
    return bool(val)


def _safe_str_list(val: Any) -> list[str]:
    if not val:
        return []
    if isinstance(val, str):
        return [val]
    try:
        return [str(v) for v in val if v is not None]
    except TypeError:
        return []


def _parse_timestamp(val: Any) -> datetime | None:
    if val is None:
        return None
    if isinstance(val, datetime):
        return val
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        if math.isnan(val) or math.isinf(val):
            return None
        try:
            return datetime.fromtimestamp(val, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return datetime.fromisoformat(str(val).replace("Z", "+00:00"))
    except ValueError:
        return None


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Reading history (caller-owned ring buffer)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Reading:
    """One timestamped sample of a signal (anxiety rating, heart rate)."""

    value: float
    timestamp: datetime | None = None


class ReadingHistory:
    """Bounded, append-only buffer of the most recent readings.

    Owned and appended to by the caller between engine invocations; the
    engine only reads it.
    """

    def __init__(self, readings: Iterable[Reading] = (), maxlen: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._readings: deque[Reading] = deque(readings, maxlen=maxlen)

    @classmethod
    def from_values(
        cls,
        values: Iterable[float],
        maxlen: int = DEFAULT_HISTORY_LIMIT,
    ) -> ReadingHistory:
        """Build an untimestamped history (fixed sampling interval assumed)."""
        return cls((Reading(float(v)) for v in values), maxlen=maxlen)

    @classmethod
    def from_raw(cls, raw: Any, maxlen: int = DEFAULT_HISTORY_LIMIT) -> ReadingHistory:
        """Build from a list of numbers or ``{"value", "timestamp"}`` dicts.

        Entries whose value is not a number are skipped; anything that is not
        a list or tuple gives an empty history.
        """
        readings = []
        if isinstance(raw, ReadingHistory):
            return raw.copy()
        if not isinstance(raw, (list, tuple)):
            return cls(maxlen=maxlen)
        for item in raw:
            if isinstance(item, Reading):
                readings.append(item)
                continue
            if isinstance(item, dict):
                value = _safe_float(item.get("value"))
                ts = _parse_timestamp(item.get("timestamp"))
            else:
                value, ts = _safe_float(item), None
            if value is not None:
                readings.append(Reading(value, ts))
        return cls(readings, maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._readings.maxlen or DEFAULT_HISTORY_LIMIT

    def append(self, value: float, timestamp: datetime | None = None) -> None:
        self._readings.append(Reading(float(value), timestamp))

    def values(self) -> list[float]:
        return [r.value for r in self._readings]

    def readings(self) -> tuple[Reading, ...]:
        return tuple(self._readings)

    def latest(self) -> Reading | None:
        return self._readings[-1] if self._readings else None

    def copy(self) -> ReadingHistory:
        return ReadingHistory(self._readings, maxlen=self.maxlen)

    def to_list(self) -> list[dict]:
        return [
            {"value": r.value, "timestamp": r.timestamp.isoformat() if r.timestamp else None}
            for r in self._readings
        ]

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[Reading]:
        return iter(self._readings)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReadingHistory):
            return NotImplemented
        return self.readings() == other.readings()

    def __repr__(self) -> str:
        return f"ReadingHistory({self.values()!r}, maxlen={self.maxlen})"


# ---------------------------------------------------------------------------
# User state snapshot
# ---------------------------------------------------------------------------

@dataclass
class UserIdentity:
    user_id: str = ""
    user_name: str = ""
    age: int | None = None


@dataclass
class FearArchetype:
    """Fear archetype profile, each trait scored 0-100."""

    control: float = 0.0
    somatic: float = 0.0
    cognitive: float = 0.0
    trust: float = 0.0
    trauma: float = 0.0

    def dominant_trait(self) -> tuple[str, float]:
        """Highest-scoring trait; ties go to the trait declared first."""
        best = ARCHETYPE_TRAITS[0]
        for trait in ARCHETYPE_TRAITS[1:]:
            if getattr(self, trait) > getattr(self, best):
                best = trait
        return best, getattr(self, best)


@dataclass
class Biometrics:
    heart_rate: float | None = None
    heart_rate_baseline: float | None = None
    heart_rate_history: ReadingHistory = field(default_factory=ReadingHistory)
    hrv: float | None = None                 # ms
    hrv_baseline: float | None = None
    respiratory_rate: float | None = None    # breaths / minute
    skin_conductance: str | None = None      # "low" | "normal" | "elevated"


@dataclass
class Behavior:
    message_frequency: float | None = None   # messages / minute
    message_length_avg: float | None = None  # characters
    response_latency: float | None = None    # seconds
    tool_usage_last_10min: int = 0
    time_since_last_message: float | None = None  # seconds


@dataclass
class Cognition:
    catastrophizing: bool = False
    control_seeking: bool = False
    past_trigger_reference: bool = False
    dissociation_indicators: bool = False
    panic_language: bool = False
    request_for_help: bool = False


@dataclass
class FlightContext:
    phase: FlightPhase | None = None
    time_in_phase: float = 0.0          # seconds
    time_to_next_event: float | None = None  # seconds
    aircraft_type: str = ""
    seat_position: str = ""
    flight_number: str = ""
    route: str = ""
    altitude: float | None = None       # feet
    speed: float | None = None          # mph
    turbulence_forecast: str = "none"
    weather_departure: str = ""
    weather_arrival: str = ""


@dataclass
class History:
    """What previous flights taught us about this user."""

    known_triggers: list[str] = field(default_factory=list)
    effective_tools: list[str] = field(default_factory=list)
    ineffective_tools: list[str] = field(default_factory=list)
    regulation_speed: str = "medium"
    typical_peak_anxiety_moment: str = ""
    charlie_handoff_history: int = 0
    graduation_progress: float = 0.0


@dataclass
class Preferences:
    preferred_mode: Mode | None = None
    verbosity: str = "moderate"
    humor_tolerance: str = "medium"
    language: str = "en"


@dataclass
class ConversationContext:
    messages_in_session: int = 0
    otie_interventions: int = 0
    tools_offered: int = 0
    tools_accepted: int = 0
    reassurance_attempts: int = 0
    last_otie_mode: Mode = Mode.CLASSIC
    last_message_text: str = ""


@dataclass
class UserState:
    """Complete snapshot passed into every engine decision."""

    identity: UserIdentity = field(default_factory=UserIdentity)
    flight_count: int = 0
    fear_archetype: FearArchetype = field(default_factory=FearArchetype)

    anxiety_level: float | None = None
    anxiety_history: ReadingHistory = field(default_factory=ReadingHistory)
    # Caller-reported trend/rate; used only when history is too short.
    anxiety_trend: Trend = Trend.STABLE
    anxiety_rate_of_change: float = 0.0

    biometrics: Biometrics | None = None
    behavior: Behavior = field(default_factory=Behavior)
    cognition: Cognition = field(default_factory=Cognition)
    flight: FlightContext = field(default_factory=FlightContext)
    history: History = field(default_factory=History)
    preferences: Preferences = field(default_factory=Preferences)
    conversation: ConversationContext = field(default_factory=ConversationContext)

    proactive_interventions_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> UserState:
        """Build a snapshot from plain JSON-like dicts. Never raises."""
        data = data if isinstance(data, dict) else {}

        ident = _section(data, "identity")
        arch = _section(data, "fear_archetype")
        beh = _section(data, "behavior")
        cog = _section(data, "cognition")
        fl = _section(data, "flight")
        hist = _section(data, "history")
        prefs = _section(data, "preferences")
        conv = _section(data, "conversation")

        biometrics = None
        if isinstance(data.get("biometrics"), dict):
            bio = data["biometrics"]
            biometrics = Biometrics(
                heart_rate=_safe_float(bio.get("heart_rate")),
                heart_rate_baseline=_safe_float(bio.get("heart_rate_baseline")),
                heart_rate_history=ReadingHistory.from_raw(bio.get("heart_rate_history")),
                hrv=_safe_float(bio.get("hrv")),
                hrv_baseline=_safe_float(bio.get("hrv_baseline")),
                respiratory_rate=_safe_float(bio.get("respiratory_rate")),
                skin_conductance=bio.get("skin_conductance"),
            )

        return cls(
            identity=UserIdentity(
                user_id=str(ident.get("user_id", "")),
                user_name=str(ident.get("user_name", "")),
                age=_safe_int(ident.get("age")),
            ),
            flight_count=_safe_int(data.get("flight_count")) or 0,
            fear_archetype=FearArchetype(
                **{t: _safe_float(arch.get(t)) or 0.0 for t in ARCHETYPE_TRAITS}
            ),
            anxiety_level=_safe_float(data.get("anxiety_level")),
            anxiety_history=ReadingHistory.from_raw(data.get("anxiety_history")),
            anxiety_trend=parse_enum(Trend, data.get("anxiety_trend")) or Trend.STABLE,
            anxiety_rate_of_change=_safe_float(data.get("anxiety_rate_of_change")) or 0.0,
            biometrics=biometrics,
            behavior=Behavior(
                message_frequency=_safe_float(beh.get("message_frequency")),
                message_length_avg=_safe_float(beh.get("message_length_avg")),
                response_latency=_safe_float(beh.get("response_latency")),
                tool_usage_last_10min=_safe_int(beh.get("tool_usage_last_10min")) or 0,
                time_since_last_message=_safe_float(beh.get("time_since_last_message")),
            ),
            cognition=Cognition(
                catastrophizing=_safe_bool(cog.get("catastrophizing")),
                control_seeking=_safe_bool(cog.get("control_seeking")),
                past_trigger_reference=_safe_bool(cog.get("past_trigger_reference")),
                dissociation_indicators=_safe_bool(cog.get("dissociation_indicators")),
                panic_language=_safe_bool(cog.get("panic_language")),
                request_for_help=_safe_bool(cog.get("request_for_help")),
            ),
            flight=FlightContext(
                phase=parse_enum(FlightPhase, fl.get("phase")),
                time_in_phase=_safe_float(fl.get("time_in_phase")) or 0.0,
                time_to_next_event=_safe_float(fl.get("time_to_next_event")),
                aircraft_type=str(fl.get("aircraft_type", "")),
                seat_position=str(fl.get("seat_position", "")),
                flight_number=str(fl.get("flight_number", "")),
                route=str(fl.get("route", "")),
                altitude=_safe_float(fl.get("altitude")),
                speed=_safe_float(fl.get("speed")),
                turbulence_forecast=str(fl.get("turbulence_forecast") or "none"),
                weather_departure=str(fl.get("weather_departure", "")),
                weather_arrival=str(fl.get("weather_arrival", "")),
            ),
            history=History(
                known_triggers=_safe_str_list(hist.get("known_triggers")),
                effective_tools=_safe_str_list(hist.get("effective_tools")),
                ineffective_tools=_safe_str_list(hist.get("ineffective_tools")),
                regulation_speed=str(hist.get("regulation_speed") or "medium"),
                typical_peak_anxiety_moment=str(hist.get("typical_peak_anxiety_moment") or ""),
                charlie_handoff_history=_safe_int(hist.get("charlie_handoff_history")) or 0,
                graduation_progress=_safe_float(hist.get("graduation_progress")) or 0.0,
            ),
            preferences=Preferences(
                preferred_mode=parse_enum(Mode, prefs.get("preferred_mode")),
                verbosity=str(prefs.get("verbosity") or "moderate"),
                humor_tolerance=str(prefs.get("humor_tolerance") or "medium"),
                language=str(prefs.get("language") or "en"),
            ),
            conversation=ConversationContext(
                messages_in_session=_safe_int(conv.get("messages_in_session")) or 0,
                otie_interventions=_safe_int(conv.get("otie_interventions")) or 0,
                tools_offered=_safe_int(conv.get("tools_offered")) or 0,
                tools_accepted=_safe_int(conv.get("tools_accepted")) or 0,
                reassurance_attempts=_safe_int(conv.get("reassurance_attempts")) or 0,
                last_otie_mode=parse_enum(Mode, conv.get("last_otie_mode")) or Mode.CLASSIC,
                last_message_text=str(conv.get("last_message_text") or ""),
            ),
            proactive_interventions_count=_safe_int(data.get("proactive_interventions_count")) or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to plain JSON-serializable dicts (inverse of from_dict)."""
        return _jsonable(self)


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, ReadingHistory):
        return obj.to_list()
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "__dataclass_fields__"):
        return {k: _jsonable(getattr(obj, k)) for k in obj.__dataclass_fields__}
    if isinstance(obj, dict):
        return {(k.value if hasattr(k, "value") else k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


# ---------------------------------------------------------------------------
# Derived signals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignalDerivative:
    """Rate of change of one signal, in units per minute."""

    value: float | None
    ddt: float = 0.0
    d2dt2: float = 0.0
    trend: Trend = Trend.STABLE
    has_signal: bool = False  # True once 3+ samples were available


@dataclass(frozen=True)
class Derivatives:
    anxiety: SignalDerivative
    heart_rate: SignalDerivative


@dataclass(frozen=True)
class TimeAxes:
    """Relative clocks, all in seconds except the journey index."""

    phase_relative_t: float | None = None
    journey_flight_index: int = 1
    flight_relative_t: float | None = None


@dataclass(frozen=True)
class PredictedTrajectory:
    outcome: TrajectoryOutcome
    confidence: float
    window_seconds: int
    rule: str = ""


# ---------------------------------------------------------------------------
# Decision records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResponsePattern:
    """How a reply should be shaped, independent of its wording."""

    validate: str           # "brief" | "direct" | "full" | "light"
    educate: str            # "skip" | "minimal" | "moderate" | "deep_dive_ok"
    tool: ToolUrgency
    empower: str            # "after_tool" | "gentle" | "celebrate" | "build_confidence"
    word_count_target: int
    sentence_structure: str  # "short" | "mixed" | "natural"
    humor: bool | str        # True | False | "gentle"
    explanation_depth: int   # 0-3


@dataclass
class InterventionCandidate:
    """A scored calming-tool option. Component scores are in [0, 1]."""

    tool_code: str
    immediate_relief: float
    skill_building: float
    agency: float
    meta_anxiety_risk: float  # higher is worse
    overall_score: float = 0.0


@dataclass(frozen=True)
class EscalationDecision:
    escalate: bool
    reason: EscalationReason | None = None
    message_type: CharlieMessageType | None = None


@dataclass(frozen=True)
class ProactiveInterventionDecision:
    intervene: bool
    reason: ProactiveReason | None = None
    message_template: MessageTemplate | None = None
    message: str | None = None
    trajectory: PredictedTrajectory | None = None
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "intervene": self.intervene,
            "reason": self.reason.value if self.reason else None,
            "message_template": self.message_template.value if self.message_template else None,
            "message": self.message,
            "trajectory": _trajectory_dict(self.trajectory),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True)
class EngineOutput:
    """The decision record handed to the generation and presentation layers."""

    mode: Mode
    pattern: ResponsePattern | None
    tool_offered: str | None
    tool_launched: bool
    intervention: str | None
    escalate: bool
    escalation_reason: EscalationReason | None
    escalation_message_type: CharlieMessageType | None
    crisis: bool
    anxiety_detected: float
    anxiety_rate: float
    hr_rate: float
    trajectory: PredictedTrajectory | None
    aviation_trigger: bool
    proactive: bool
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        pattern = None
        if self.pattern is not None:
            pattern = asdict(self.pattern)
            pattern["tool"] = self.pattern.tool.value
        return {
            "mode": self.mode.value,
            "pattern": pattern,
            "tool_offered": self.tool_offered,
            "tool_launched": self.tool_launched,
            "intervention": self.intervention,
            "charlie_handoff": self.escalate,
            "charlie_reason": self.escalation_reason.value if self.escalation_reason else None,
            "charlie_message_type": (
                self.escalation_message_type.value if self.escalation_message_type else None
            ),
            "crisis": self.crisis,
            "anxiety_detected": self.anxiety_detected,
            "derivatives": {"anxiety_rate": self.anxiety_rate, "hr_rate": self.hr_rate},
            "trajectory": _trajectory_dict(self.trajectory),
            "aviation_trigger": self.aviation_trigger,
            "proactive": self.proactive,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class InterventionEffectiveness:
    intervention_id: str
    user_id: str
    tool_used: str
    anxiety_before: float
    anxiety_after: float
    anxiety_drop: float
    regulation_time: float  # seconds
    effective: bool
    timestamp: datetime


def _trajectory_dict(trajectory: PredictedTrajectory | None) -> dict | None:
    if trajectory is None:
        return None
    return {
        "outcome": trajectory.outcome.value,
        "confidence": trajectory.confidence,
        "window_seconds": trajectory.window_seconds,
    }
