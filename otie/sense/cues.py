"""Phrase-list matching against the latest user message.

Matching is a case-insensitive substring test against a named phrase set.
It is a fast gate, not a classifier: misses are acceptable, and each list is
kept narrow so ordinary anxious language does not match.
"""

from __future__ import annotations

from otie.utils.config import EngineConfig
from otie.utils.mappings import PhraseSet


class PhraseMatcher:
    """Scans text against the phrase sets configured for a deployment."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        config = config or EngineConfig()
        self._phrases = {
            phrase_set: tuple(p.lower() for p in phrases if p)
            for phrase_set, phrases in config.phrases.items()
        }

    def find(self, phrase_set: PhraseSet, text: str | None) -> str | None:
        """Return the first phrase of ``phrase_set`` contained in ``text``."""
        if not text:
            return None
        lowered = text.lower()
        for phrase in self._phrases.get(phrase_set, ()):
            if phrase in lowered:
                return phrase
        return None

    def matches(self, phrase_set: PhraseSet, text: str | None) -> bool:
        return self.find(phrase_set, text) is not None

    def scan(self, text: str | None) -> dict[PhraseSet, str]:
        """All phrase sets with a hit, mapped to the phrase that matched."""
        hits = {}
        for phrase_set in self._phrases:
            phrase = self.find(phrase_set, text)
            if phrase is not None:
                hits[phrase_set] = phrase
        return hits
