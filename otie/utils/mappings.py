"""Domain constants and enumerations for the OTIE flight-anxiety companion."""

from __future__ import annotations

from enum import Enum


class Mode(str, Enum):
    """Operating persona that voices the reply."""

    CLASSIC = "OTIE-CLASSIC"
    SOFT = "OTIE-SOFT"
    CLINICAL = "OTIE-CLINICAL"
    NERD = "OTIE-NERD"
    MINIMAL = "OTIE-MINIMAL"
    KID = "OTIE-KID"
    MYSTIC = "OTIE-MYSTIC"
    CRISIS_PROTOCOL = "CRISIS_PROTOCOL"


class FlightPhase(str, Enum):
    BOARDING = "boarding"
    DOOR_CLOSE = "door_close"
    PUSHBACK = "pushback"
    TAXI = "taxi"
    TAKEOFF = "takeoff"
    CLIMB = "climb"
    CRUISE = "cruise"
    DESCENT = "descent"
    LANDING = "landing"
    LANDED = "landed"


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class TrajectoryOutcome(str, Enum):
    LIKELY_CALM = "likely_calm"
    LIKELY_PLATEAU = "likely_plateau"
    LIKELY_SPIKE = "likely_spike"


class ToolUrgency(str, Enum):
    IMMEDIATE = "immediate"
    OFFER_NOW = "offer_now"
    OFFER = "offer"
    IF_REQUESTED = "if_requested"


class ToolCode(str, Enum):
    """Calming tools the companion can offer or launch."""

    BREATHING_478 = "4-7-8_breathing"
    PHYSIOLOGICAL_SIGH = "physiological_sigh"
    COUNTDOWN_TIMER = "countdown_timer"
    EDUCATION = "education"
    VALIDATION_ONLY = "validation_only"


class EscalationReason(str, Enum):
    SUSTAINED_HIGH_ANXIETY = "sustained_high_anxiety"
    CATASTROPHIC_THINKING = "catastrophic_thinking"
    TOOLS_NOT_WORKING = "tools_not_working"
    DISSOCIATION = "dissociation"
    REASSURANCE_INEFFECTIVE = "reassurance_ineffective"
    USER_REQUEST = "user_request"


class CharlieMessageType(str, Enum):
    GROUNDING = "grounding"
    PILOT_AUTHORITY = "pilot_authority"
    HUMAN_REASSURANCE = "human_reassurance"
    REQUESTED = "requested"


class ProactiveReason(str, Enum):
    KNOWN_TRIGGER_APPROACHING = "known_trigger_approaching"
    RAPID_ANXIETY_SPIKE = "rapid_anxiety_spike"
    HEART_RATE_SPIKE = "heart_rate_spike"
    SILENT_DURING_HARD_MOMENT = "silent_during_hard_moment"
    TURBULENCE_FORECAST = "turbulence_forecast"
    PREDICTED_SPIKE_WINDOW = "predicted_spike_window"
    RATE_LIMITED = "rate_limited"


class MessageTemplate(str, Enum):
    PREDICTIVE_WARNING = "predictive_warning"
    PROACTIVE_BREATHWORK = "proactive_breathwork"
    BIOMETRIC_CHECK_IN = "biometric_check_in"
    GENTLE_CHECK_IN = "gentle_check_in"
    HEADS_UP_TURBULENCE = "heads_up_turbulence"


class PhraseSet(str, Enum):
    """Named word lists scanned against the latest user message."""

    CRISIS = "crisis"
    CATASTROPHIC = "catastrophic"
    TECHNICAL = "technical"
    REFLECTIVE = "reflective"
    HUMAN_REQUEST = "human_request"
    AVIATION_TRIGGER = "aviation_trigger"


# --- Phrase lists (matched as lowercase substrings) ---

DEFAULT_PHRASES: dict[PhraseSet, tuple[str, ...]] = {
    # Self-harm, medical emergency, violence, sabotage. "going down" is
    # deliberately absent: it is catastrophic thinking, not a crisis.
    PhraseSet.CRISIS: (
        "kill myself",
        "want to die",
        "end it all",
        "suicide",
        "heart attack",
        "can't breathe at all",
        "cannot breathe at all",
        "chest pain",
        "hurt someone",
        "going to crash this plane",
        "there's a bomb",
        "there is a bomb",
        "have a bomb",
    ),
    PhraseSet.CATASTROPHIC: (
        "we're crashing",
        "going down",
        "we're going to die",
        "something's wrong with the plane",
        "the engine is on fire",
        "we're going to crash",
    ),
    PhraseSet.TECHNICAL: (
        "how does",
        "explain",
        "why does",
        "what's the science",
        "engineering",
        "physics",
        "mechanism",
        "technical",
    ),
    PhraseSet.REFLECTIVE: (
        "surrender",
        "trust",
        "universe",
        "meditation",
        "breathwork",
        "consciousness",
        "mindful",
        "present",
    ),
    PhraseSet.HUMAN_REQUEST: (
        "real pilot",
        "captain charlie",
        "human",
        "actual person",
    ),
    PhraseSet.AVIATION_TRIGGER: (
        # sounds
        "sound", "noise", "hearing", "loud", "grinding", "whining",
        "clunk", "thunk", "bang", "dinging", "chime",
        # sensations
        "shaking", "bumpy", "vibration", "dropping", "falling", "tilting",
        # sights
        "the wing", "wings", "bending",
        # smells
        "smell", "burning", "fuel",
    ),
}


# --- Flight phases ---

PHASE_ORDER = list(FlightPhase)

NEXT_EVENT_NAMES = {
    FlightPhase.BOARDING: "door close",
    FlightPhase.DOOR_CLOSE: "pushback",
    FlightPhase.PUSHBACK: "taxi",
    FlightPhase.TAXI: "takeoff",
    FlightPhase.TAKEOFF: "climb",
    FlightPhase.CLIMB: "cruise",
    FlightPhase.CRUISE: "descent",
    FlightPhase.DESCENT: "landing",
    FlightPhase.LANDING: "touchdown",
    FlightPhase.LANDED: "gate arrival",
}

TURBULENCE_SEVERITY = {
    "none": 0,
    "light": 1,
    "moderate": 2,
    "severe": 3,
    "extreme": 4,
}

# Fear archetype traits in declaration order (tie-break order for dominance)
ARCHETYPE_TRAITS = ("control", "somatic", "cognitive", "trust", "trauma")

# Anxiety state labels by upper bound (inclusive)
ANXIETY_STATE_BANDS = (
    (2.0, "grounded"),
    (4.0, "alert"),
    (6.0, "elevated"),
    (8.0, "acute"),
    (10.0, "crisis"),
)


def next_phase(phase: FlightPhase | None) -> FlightPhase | None:
    """Return the phase that follows ``phase``, or None at the end of the flight."""
    if phase is None:
        return None
    idx = PHASE_ORDER.index(phase)
    if idx + 1 >= len(PHASE_ORDER):
        return None
    return PHASE_ORDER[idx + 1]


def parse_enum(enum_cls, value):
    """Look up an enum member by value or name; None when it does not match."""
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    try:
        return enum_cls(text)
    except ValueError:
        pass
    key = text.upper().replace("-", "_")
    return enum_cls.__members__.get(key)
