"""Ordered first-match rule cascades.

Mode selection, escalation, trajectory prediction and the proactive monitor
are all priority lists: rules are evaluated top to bottom and the first
predicate that holds decides the outcome. Keeping them as data makes the
ordering explicit and testable rule by rule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

C = TypeVar("C")
T = TypeVar("T")


@dataclass(frozen=True)
class Rule(Generic[C, T]):
    """One ``(name, predicate, outcome)`` entry of a cascade."""

    name: str
    predicate: Callable[[C], bool]
    outcome: Callable[[C], T]


@dataclass(frozen=True)
class RuleMatch(Generic[T]):
    rule: str
    outcome: T


class RuleCascade(Generic[C, T]):
    """Evaluates rules in order; the first match wins."""

    def __init__(self, name: str, rules: Sequence[Rule[C, T]], default: Callable[[C], T]) -> None:
        names = [r.name for r in rules]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate rule names in cascade {name!r}: {names}")
        self.name = name
        self.rules = tuple(rules)
        self.default = default

    @property
    def rule_names(self) -> list[str]:
        return [r.name for r in self.rules]

    def evaluate(self, context: C) -> RuleMatch[T]:
        for rule in self.rules:
            if rule.predicate(context):
                logger.debug(f"[{self.name}] rule '{rule.name}' matched")
                return RuleMatch(rule=rule.name, outcome=rule.outcome(context))
        logger.debug(f"[{self.name}] no rule matched; using default")
        return RuleMatch(rule="default", outcome=self.default(context))

    def rule(self, name: str) -> Rule[C, T]:
        for r in self.rules:
            if r.name == name:
                return r
        raise KeyError(name)
