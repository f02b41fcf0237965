"""Declaration filter: deny prefixes with exact-name allow overrides.

Evaluation for a class name:

1. ignored if the name starts with any deny pattern;
2. only when ignored, re-admitted if the name equals an allow entry.

Allow entries never include a class that matched no deny pattern, and there
is no partial override: an allow entry re-admits exactly one name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from core.generator_config import DEFAULT_ALLOW_EXACT, DEFAULT_DENY_PREFIXES
from extraction.models import DeclarationGraph

logger = logging.getLogger(__name__)

PREFIX = "prefix"
EXACT = "exact"
DENY = "deny"
ALLOW = "allow"


@dataclass(frozen=True)
class FilterRule:
    """One name pattern with its match kind and action."""

    pattern: str
    match: str = PREFIX
    action: str = DENY

    def __post_init__(self) -> None:
        if self.match not in (PREFIX, EXACT):
            raise ValueError(f"Unknown match kind: {self.match}")
        if self.action not in (DENY, ALLOW):
            raise ValueError(f"Unknown rule action: {self.action}")

    def matches(self, name: str) -> bool:
        if self.match == PREFIX:
            return name.startswith(self.pattern)
        return name == self.pattern

    def __str__(self) -> str:
        return f"{self.action}:{self.match}:{self.pattern}"


@dataclass(frozen=True)
class FilterRuleSet:
    """Ordered deny rules and ordered allow overrides."""

    deny: tuple[FilterRule, ...] = ()
    allow: tuple[FilterRule, ...] = ()

    @classmethod
    def from_patterns(
        cls,
        deny_prefixes: Sequence[str],
        allow_exact: Sequence[str],
    ) -> "FilterRuleSet":
        return cls(
            deny=tuple(FilterRule(p, PREFIX, DENY) for p in deny_prefixes),
            allow=tuple(FilterRule(p, EXACT, ALLOW) for p in allow_exact),
        )


DEFAULT_RULES = FilterRuleSet.from_patterns(DEFAULT_DENY_PREFIXES, DEFAULT_ALLOW_EXACT)


@dataclass(frozen=True)
class FilterDecision:
    """Outcome for one declaration, with the rule that decided it."""

    name: str
    ignore: bool
    matched_rule: Optional[FilterRule] = None
    file_path: str = field(default="", compare=False)


def evaluate_rules(name: str, rules: FilterRuleSet) -> FilterDecision:
    """Decide whether the declaration ``name`` is ignored."""
    deny_rule = next((rule for rule in rules.deny if rule.matches(name)), None)
    if deny_rule is None:
        return FilterDecision(name=name, ignore=False)

    allow_rule = next((rule for rule in rules.allow if rule.matches(name)), None)
    if allow_rule is not None:
        return FilterDecision(name=name, ignore=False, matched_rule=allow_rule)
    return FilterDecision(name=name, ignore=True, matched_rule=deny_rule)


def apply_filter(graph: DeclarationGraph, rules: FilterRuleSet) -> list[FilterDecision]:
    """Mark filtered top-level classes of every unit as ignored.

    The filter only ever sets the ignored flag, so running it again leaves
    the ignored set unchanged.

    Returns:
        Every decision made, in unit/class order.
    """
    decisions: list[FilterDecision] = []
    for unit in graph.units:
        ignored = 0
        for cls in unit.classes:
            decision = evaluate_rules(cls.name, rules)
            decisions.append(
                FilterDecision(
                    name=decision.name,
                    ignore=decision.ignore,
                    matched_rule=decision.matched_rule,
                    file_path=unit.file_path,
                )
            )
            if decision.ignore:
                cls.explicitly_ignore(f"filtered by rule {decision.matched_rule}")
                ignored += 1
            elif decision.matched_rule is not None:
                logger.debug("Kept %s by override %s", cls.name, decision.matched_rule)
        if ignored:
            logger.info("Ignored %d of %d classes in %s", ignored, len(unit.classes), unit.file_path)
    return decisions


def make_filter_stage(
    rules: FilterRuleSet,
    sink: Optional[list[FilterDecision]] = None,
) -> Callable[[DeclarationGraph], DeclarationGraph]:
    """Adapt ``apply_filter`` to a pipeline stage.

    Decisions are appended to ``sink`` when one is given.
    """

    def filter_declarations(graph: DeclarationGraph) -> DeclarationGraph:
        decisions = apply_filter(graph, rules)
        if sink is not None:
            sink.extend(decisions)
        return graph

    return filter_declarations
