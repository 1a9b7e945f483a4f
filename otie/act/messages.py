"""Message text for proactive (unprompted) check-ins."""

from __future__ import annotations

from otie.data.schema import UserState
from otie.utils.mappings import NEXT_EVENT_NAMES, MessageTemplate


def next_event_name(state: UserState) -> str:
    """Human name for what happens after the current flight phase."""
    return NEXT_EVENT_NAMES.get(state.flight.phase, "next phase")


def minutes_until_next_event(state: UserState) -> int | None:
    seconds = state.flight.time_to_next_event
    if seconds is None:
        return None
    return max(0, round(seconds / 60))


def render_proactive_message(
    template: MessageTemplate,
    state: UserState,
    turbulence: tuple[str, float] | None = None,
) -> str:
    """Fill in a proactive message template for this user and moment.

    Args:
        template: Which check-in to send.
        state: Normalized user state.
        turbulence: Parsed ``(severity, minutes_ahead)`` forecast, used by
            the turbulence heads-up.
    """
    if template is MessageTemplate.PREDICTIVE_WARNING:
        minutes = minutes_until_next_event(state)
        if minutes is None:
            heads_up = f"{next_event_name(state)} is coming up"
        else:
            heads_up = f"{minutes} minutes until {next_event_name(state)}"
        return (
            f"Hey. Heads up: {heads_up}.\n\n"
            "Last time this was your trigger. Want to get ahead of it? "
            "We can breathe now before it happens."
        )

    if template is MessageTemplate.PROACTIVE_BREATHWORK:
        return (
            "I'm noticing your anxiety climbing. Let's not wait for it to peak.\n\n"
            "Breathe with me right now. 4-7-8. Just one round."
        )

    if template is MessageTemplate.BIOMETRIC_CHECK_IN:
        return (
            "Your heart rate just spiked. I see it.\n\n"
            "You doing okay? Want to breathe, or just checking in?"
        )

    if template is MessageTemplate.HEADS_UP_TURBULENCE:
        severity, minutes = turbulence or ("some", 5)
        when = "any minute now" if minutes <= 0 else f"in about {round(minutes)} minutes"
        return (
            f"FYI: {severity.capitalize()} turbulence coming {when}. Just air currents.\n\n"
            "Want me to explain what you'll feel, or you good?"
        )

    return (
        "You've been quiet for a bit. That okay, or you spiraling?\n\n"
        "I'm here if you need me."
    )
