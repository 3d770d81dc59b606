"""Governing-rule resolution for one actor/target pair."""

from __future__ import annotations

from typing import Iterable

from qmoji.policy.context import ActorContext, TargetContext
from qmoji.policy.schema import PolicyRule
from qmoji.policy.selectors import matches_selector


def sort_rules(rules: Iterable[PolicyRule]) -> list[PolicyRule]:
    """Order rules by priority, then recency, both descending."""
    return sorted(rules, key=lambda rule: (-rule.priority, -rule.created_at))


async def pick_rule(
    rules: Iterable[PolicyRule],
    actor: ActorContext,
    target: TargetContext,
) -> PolicyRule | None:
    """Return the first rule in resolution order whose selector matches."""
    scoped = [rule for rule in rules if rule.scope == target.scope]
    if not scoped:
        return None
    for rule in sort_rules(scoped):
        if await matches_selector(rule.selector, actor, target):
            return rule
    return None
