"""Crisis-language gate.

Self-harm ideation, medical emergency, violence and sabotage statements put
the conversation into the crisis protocol and short-circuit every other
decision. Catastrophic thinking about the flight ("we're going down") is not
a crisis here; it is handled by the escalation rules.
"""

from __future__ import annotations

import logging

from otie.sense.cues import PhraseMatcher
from otie.utils.config import EngineConfig
from otie.utils.mappings import PhraseSet

logger = logging.getLogger(__name__)


class CrisisDetector:
    def __init__(self, config: EngineConfig | None = None, matcher: PhraseMatcher | None = None) -> None:
        self.matcher = matcher or PhraseMatcher(config)

    def detect(self, message: str | None) -> bool:
        phrase = self.matcher.find(PhraseSet.CRISIS, message)
        if phrase is not None:
            logger.info(f"Crisis phrase detected: {phrase!r}")
            return True
        return False
