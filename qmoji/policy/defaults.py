"""Built-in default rules and per-scope permission templates."""

from __future__ import annotations

from copy import deepcopy

from qmoji.policy.schema import PermissionScope, PolicyRule, PolicySelector, SelectorType

DEFAULT_PERMISSION_TEMPLATES: dict[PermissionScope, dict[str, bool]] = {
    "global": {"read": True, "create": True, "remove": False},
    "group": {"read": True, "create": True, "remove": True},
    "personal": {"read": True, "create": True, "remove": True},
}

ADMIN_PRIORITY = 100
GROUP_ADMIN_PRIORITY = 50


def permission_template(scope: PermissionScope) -> dict[str, bool]:
    """Baseline permissions for a brand-new rule in this scope."""
    return deepcopy(DEFAULT_PERMISSION_TEMPLATES[scope])


def build_default_rules() -> list[PolicyRule]:
    """Default rules: admins may do anything, everyone gets the scope template.

    Group admins additionally manage their own group's emoji.
    """
    all_allowed = {"read": True, "create": True, "remove": True}
    rules: list[PolicyRule] = []
    seq = 0

    def add(scope: PermissionScope, kind: SelectorType, permissions: dict[str, bool], priority: int) -> None:
        nonlocal seq
        seq += 1
        rules.append(
            PolicyRule(
                id=f"default-{scope}-{kind.value}",
                scope=scope,
                selector=PolicySelector(type=kind),
                permissions=permissions,
                priority=priority,
                created_at=seq,
            )
        )

    for scope in ("global", "group", "personal"):
        add(scope, SelectorType.ADMIN, all_allowed, ADMIN_PRIORITY)
    add("group", SelectorType.GROUPADMIN, all_allowed, GROUP_ADMIN_PRIORITY)
    for scope in ("global", "group", "personal"):
        add(scope, SelectorType.EVERYONE, permission_template(scope), 0)
    return rules
