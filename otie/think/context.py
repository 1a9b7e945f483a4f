"""Everything a decision rule may look at, computed once per engine call."""

from __future__ import annotations

from dataclasses import dataclass, field

from otie.data.schema import Derivatives, PredictedTrajectory, TimeAxes, UserState
from otie.utils.config import EngineConfig
from otie.utils.mappings import PhraseSet


@dataclass(frozen=True)
class DecisionContext:
    """Normalized state plus the signals derived from it.

    ``cues`` maps each phrase set that matched the latest message to the
    phrase that matched.
    """

    state: UserState
    message: str
    derivatives: Derivatives
    time_axes: TimeAxes
    trajectory: PredictedTrajectory
    config: EngineConfig
    cues: dict[PhraseSet, str] = field(default_factory=dict)
    crisis: bool = False

    @property
    def anxiety(self) -> float:
        return self.state.anxiety_level

    def has_cue(self, phrase_set: PhraseSet) -> bool:
        return phrase_set in self.cues
