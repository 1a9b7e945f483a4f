"""Learn which calming tools work for a user.

After a tool has run its course the caller reports anxiety before and after;
a drop of two points or more counts as effective. Outcomes are folded into
the user's ``History`` so the ranker can prefer proven tools next time.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from otie.data.schema import History, InterventionEffectiveness
from otie.sense.normalizer import normalize_anxiety
from otie.utils.config import EngineConfig

logger = logging.getLogger(__name__)


def assess_intervention(
    tool_used: str,
    anxiety_before: float,
    anxiety_after: float,
    regulation_time: float,
    user_id: str = "",
    intervention_id: str | None = None,
    timestamp: datetime | None = None,
    config: EngineConfig | None = None,
) -> InterventionEffectiveness:
    """Score one completed intervention.

    Args:
        tool_used: Tool code, e.g. ``"4-7-8_breathing"``.
        anxiety_before: Rating when the tool was offered.
        anxiety_after: Rating once the tool finished.
        regulation_time: Seconds between the two ratings.
        user_id: Owner of the record.
        intervention_id: Caller's id; a random one is generated if absent.
        timestamp: When the assessment was made (defaults to now, UTC).
        config: Supplies the effective-drop threshold.

    Returns:
        InterventionEffectiveness record.
    """
    config = config or EngineConfig()
    before = normalize_anxiety(anxiety_before, config.default_anxiety)
    after = normalize_anxiety(anxiety_after, config.default_anxiety)
    drop = before - after

    return InterventionEffectiveness(
        intervention_id=intervention_id or uuid.uuid4().hex,
        user_id=user_id,
        tool_used=tool_used,
        anxiety_before=before,
        anxiety_after=after,
        anxiety_drop=drop,
        regulation_time=max(0.0, float(regulation_time)),
        effective=drop >= config.effective_anxiety_drop,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def update_tool_history(history: History, record: InterventionEffectiveness) -> History:
    """Return a new History with the tool moved into the matching list.

    A tool is never in both lists: the latest outcome wins.
    """
    tool = record.tool_used
    effective = [t for t in history.effective_tools if t != tool]
    ineffective = [t for t in history.ineffective_tools if t != tool]
    if record.effective:
        effective.append(tool)
    else:
        ineffective.append(tool)

    logger.debug(
        f"{tool}: drop {record.anxiety_drop:+.1f} -> "
        f"{'effective' if record.effective else 'ineffective'}"
    )
    return replace(history, effective_tools=effective, ineffective_tools=ineffective)
