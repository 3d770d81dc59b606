"""Policy manager: custom rule ownership and access evaluation."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal

from loguru import logger

from qmoji.policy.context import ActorContext, TargetContext
from qmoji.policy.defaults import permission_template
from qmoji.policy.loader import load_policy_storage, save_policy_storage
from qmoji.policy.resolver import pick_rule, sort_rules
from qmoji.policy.schema import (
    PermissionAction,
    PermissionScope,
    PolicyRule,
    PolicySelector,
    PolicyStorage,
    format_permissions,
    rule_key,
    sanitize_permissions,
)

DecisionSource = Literal["custom", "default", "none"]


@dataclass(slots=True)
class PolicyDecision:
    """Governing rule for one actor/target pair."""

    rule: PolicyRule | None
    source: DecisionSource

    def allows(self, action: PermissionAction) -> bool:
        return self.rule is not None and self.rule.allows(action)


@dataclass(slots=True)
class RuleUpdate:
    """Result of an upsert on one (scope, selector) identity."""

    rule: PolicyRule
    created: bool


@dataclass(slots=True)
class PolicyListing:
    """Snapshot of both rule sets."""

    custom: list[PolicyRule] = field(default_factory=list)
    defaults: list[PolicyRule] = field(default_factory=list)


def _clone_rules(rules: list[PolicyRule]) -> list[PolicyRule]:
    return [rule.clone() for rule in rules]


def dedupe_rules(rules: list[PolicyRule], keep: Literal["newest", "oldest"] = "newest") -> list[PolicyRule]:
    """Keep one rule per (scope, selector) identity."""
    ordered = sorted(rules, key=lambda rule: rule.created_at, reverse=(keep == "newest"))
    seen: set[tuple[str, str, str]] = set()
    result: list[PolicyRule] = []
    for rule in ordered:
        if rule.key in seen:
            continue
        seen.add(rule.key)
        result.append(rule.clone())
    return result


class PolicyManager:
    """Owns the custom rule list and its on-disk mirror."""

    def __init__(self, policy_path: Path, default_rules: list[PolicyRule]):
        self.policy_path = policy_path
        self._defaults = dedupe_rules(default_rules, keep="oldest")
        self._default_priorities = {rule.key: rule.priority for rule in self._defaults}

        storage = load_policy_storage(policy_path)
        self._custom = dedupe_rules(storage.custom, keep="newest")
        self._last_stamp = max((rule.created_at for rule in self._custom), default=0)
        if len(self._custom) != len(storage.custom):
            logger.info(
                "dropped {} duplicate custom rule(s) from {}",
                len(storage.custom) - len(self._custom),
                policy_path,
            )
            self._save()

    def _save(self) -> None:
        save_policy_storage(PolicyStorage(custom=self._custom), self.policy_path)

    def _now(self) -> int:
        # Strictly increasing so recency tie-breaks stay total.
        stamp = max(int(time.time() * 1000), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    def _resolve_priority(self, scope: PermissionScope, selector: PolicySelector) -> int:
        return self._default_priorities.get(rule_key(scope, selector), 0)

    def _find_custom(self, scope: PermissionScope, selector: PolicySelector) -> int:
        key = rule_key(scope, selector)
        for index, rule in enumerate(self._custom):
            if rule.key == key:
                return index
        return -1

    async def explain(self, actor: ActorContext, target: TargetContext) -> PolicyDecision:
        """Find the governing rule: custom first, then defaults."""
        rule = await pick_rule(self._custom, actor, target)
        if rule is not None:
            return PolicyDecision(rule=rule.clone(), source="custom")
        fallback = await pick_rule(self._defaults, actor, target)
        if fallback is not None:
            return PolicyDecision(rule=fallback.clone(), source="default")
        return PolicyDecision(rule=None, source="none")

    async def is_allowed(self, actor: ActorContext, target: TargetContext, action: PermissionAction) -> bool:
        """Evaluate one action; no governing rule means deny."""
        decision = await self.explain(actor, target)
        return decision.allows(action)

    def add_custom_rule(
        self,
        *,
        scope: PermissionScope,
        selector: PolicySelector,
        permissions: dict[str, Any],
        priority: int | None = None,
    ) -> PolicyRule:
        """Insert a rule, replacing any custom rule with the same identity.

        An omitted priority inherits the default rule's priority for the same
        identity, else 0.
        """
        rule = PolicyRule(
            id=uuid.uuid4().hex,
            scope=scope,
            selector=selector,
            permissions=sanitize_permissions(permissions),
            priority=priority if priority is not None else self._resolve_priority(scope, selector),
            created_at=self._now(),
        )
        self._custom = [existing for existing in self._custom if existing.key != rule.key]
        self._custom.append(rule)
        self._save()
        logger.info(
            "added custom rule {} {} {} priority={}",
            scope,
            selector.describe(),
            format_permissions(rule.permissions),
            rule.priority,
        )
        return rule.clone()

    def _upsert(
        self,
        scope: PermissionScope,
        selector: PolicySelector,
        priority: int | None,
        mutate: Callable[[dict[str, bool]], dict[str, Any]],
    ) -> RuleUpdate:
        index = self._find_custom(scope, selector)
        existing = self._custom[index] if index >= 0 else None
        base = dict(existing.permissions) if existing is not None else permission_template(scope)
        permissions = sanitize_permissions(mutate(base))
        if priority is None:
            priority = existing.priority if existing is not None else self._resolve_priority(scope, selector)

        if existing is not None:
            updated = existing.model_copy(
                update={"permissions": permissions, "priority": priority, "created_at": self._now()},
                deep=True,
            )
            self._custom[index] = updated
            self._save()
            logger.info(
                "updated custom rule {} {} {} priority={}",
                scope,
                selector.describe(),
                format_permissions(permissions),
                priority,
            )
            return RuleUpdate(rule=updated.clone(), created=False)

        rule = PolicyRule(
            id=uuid.uuid4().hex,
            scope=scope,
            selector=selector,
            permissions=permissions,
            priority=priority,
            created_at=self._now(),
        )
        self._custom.append(rule)
        self._save()
        logger.info(
            "created custom rule {} {} {} priority={}",
            scope,
            selector.describe(),
            format_permissions(permissions),
            priority,
        )
        return RuleUpdate(rule=rule.clone(), created=True)

    def set_rule_permissions(
        self,
        scope: PermissionScope,
        selector: PolicySelector,
        priority: int | None,
        permissions: dict[str, Any],
    ) -> RuleUpdate:
        """Upsert the full permission map for one identity.

        The given map replaces the stored one; actions it leaves out are denied.
        """
        return self._upsert(scope, selector, priority, lambda current: permissions)

    def update_single_permission(
        self,
        scope: PermissionScope,
        selector: PolicySelector,
        priority: int | None,
        action: PermissionAction,
        value: bool,
    ) -> RuleUpdate:
        """Upsert one action, keeping the others at their current values."""
        return self._upsert(scope, selector, priority, lambda current: {**current, action: value})

    def remove_rules(
        self,
        scope: PermissionScope | None = None,
        selector: PolicySelector | None = None,
        priority: int | None = None,
        remove_all: bool = True,
    ) -> list[PolicyRule]:
        """Remove matching custom rules; only the newest one unless ``remove_all``."""
        matches = [
            rule
            for rule in self._custom
            if (scope is None or rule.scope == scope)
            and (selector is None or rule.selector.key == selector.key)
            and (priority is None or rule.priority == priority)
        ]
        if not matches:
            return []

        matches.sort(key=lambda rule: rule.created_at, reverse=True)
        targets = matches if remove_all else matches[:1]
        self._custom = [rule for rule in self._custom if not any(rule is target for target in targets)]
        self._save()
        for rule in targets:
            logger.info("removed custom rule {} {} ({})", rule.scope, rule.selector.describe(), rule.id)
        return _clone_rules(targets)

    def get_custom_rules(self) -> list[PolicyRule]:
        return _clone_rules(self._custom)

    def get_default_rules(self) -> list[PolicyRule]:
        return _clone_rules(self._defaults)

    def list_rules(self) -> PolicyListing:
        return PolicyListing(
            custom=_clone_rules(sort_rules(self._custom)),
            defaults=_clone_rules(self._defaults),
        )
