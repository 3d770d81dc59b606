"""Selector matching against actor/target contexts."""

from __future__ import annotations

from loguru import logger

from qmoji.policy.context import ActorContext, TargetContext
from qmoji.policy.schema import PolicySelector, SelectorType


async def _group_admin_match(selector: PolicySelector, actor: ActorContext, target: TargetContext) -> bool:
    if actor.is_group_admin is None:
        return False
    group_id = selector.value or target.group_id
    if not group_id:
        return False
    try:
        return bool(await actor.is_group_admin(group_id))
    except Exception as e:
        logger.warning(f"group admin check failed for user {actor.user_id} in group {group_id}: {e}")
        return False


async def matches_selector(selector: PolicySelector, actor: ActorContext, target: TargetContext) -> bool:
    """Return whether the selector covers this actor for this target."""
    kind = selector.type
    if kind == SelectorType.ADMIN:
        return actor.is_admin
    if kind in (SelectorType.EVERYONE, SelectorType.ALLOWLIST_USER):
        return actor.is_allowlist_user or actor.is_allowlist_group
    if kind == SelectorType.USER:
        return selector.value is not None and str(actor.user_id) == selector.value
    if kind == SelectorType.GROUP:
        return bool(selector.value and target.group_id and target.group_id == selector.value)
    if kind == SelectorType.GROUPADMIN:
        return await _group_admin_match(selector, actor, target)
    if kind == SelectorType.OWNER:
        return bool(target.owner_id and target.owner_id == str(actor.user_id))
    if kind == SelectorType.GROUP_MEMBER:
        return bool(
            target.group_id
            and actor.group_id is not None
            and target.group_id == str(actor.group_id)
        )
    return False
