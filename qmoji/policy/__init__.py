"""Emoji permission policy package."""

from qmoji.policy.context import ActorContext, TargetContext
from qmoji.policy.defaults import build_default_rules, permission_template
from qmoji.policy.engine import PolicyDecision, PolicyListing, PolicyManager, RuleUpdate
from qmoji.policy.group_admin import GroupAdminCache
from qmoji.policy.loader import (
    ensure_policy_file,
    get_policy_path,
    load_policy_storage,
    save_policy_storage,
)
from qmoji.policy.middleware import PolicyGate, target_for_owner, target_for_scope
from qmoji.policy.schema import PolicyRule, PolicySelector, PolicyStorage, SelectorType

__all__ = [
    "ActorContext",
    "GroupAdminCache",
    "PolicyDecision",
    "PolicyGate",
    "PolicyListing",
    "PolicyManager",
    "PolicyRule",
    "PolicySelector",
    "PolicyStorage",
    "RuleUpdate",
    "SelectorType",
    "TargetContext",
    "build_default_rules",
    "ensure_policy_file",
    "get_policy_path",
    "load_policy_storage",
    "permission_template",
    "save_policy_storage",
    "target_for_owner",
    "target_for_scope",
]
