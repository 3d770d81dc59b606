"""Policy gate that turns inbound senders into actor contexts."""

from __future__ import annotations

from qmoji.policy.context import ActorContext, TargetContext
from qmoji.policy.engine import PolicyManager
from qmoji.policy.group_admin import GroupAdminCache
from qmoji.policy.schema import PermissionAction, PermissionScope
from qmoji.storage.allowlist import AllowlistStore

GLOBAL_OWNER_KEY = "global"
GROUP_OWNER_PREFIX = "chat-"


def target_for_owner(owner_key: str) -> TargetContext:
    """Map an image record owner key to the target it belongs to.

    Keys are ``global``, ``chat-<group id>`` or a bare user id.
    """
    key = owner_key.strip()
    if key == GLOBAL_OWNER_KEY:
        return TargetContext(scope="global")
    if key.startswith(GROUP_OWNER_PREFIX):
        return TargetContext(scope="group", group_id=key[len(GROUP_OWNER_PREFIX):])
    return TargetContext(scope="personal", owner_id=key)


def target_for_scope(scope: PermissionScope, user_id: int, group_id: int | None = None) -> TargetContext:
    """Target an actor addresses from where they are: their own or current group's emoji."""
    if scope == "global":
        return TargetContext(scope="global")
    if scope == "group":
        return TargetContext(scope="group", group_id=str(group_id) if group_id is not None else None)
    return TargetContext(scope="personal", owner_id=str(user_id))


class PolicyGate:
    """Builds actor contexts and answers access questions for one sender."""

    def __init__(
        self,
        manager: PolicyManager,
        allowlist: AllowlistStore,
        admins: list[int],
        group_admin_cache: GroupAdminCache | None = None,
    ):
        self._manager = manager
        self._allowlist = allowlist
        self._admins = set(admins)
        self._group_admin_cache = group_admin_cache

    @property
    def manager(self) -> PolicyManager:
        return self._manager

    def accepts(self, user_id: int, group_id: int | None = None) -> bool:
        """Whether the bot should handle messages from this sender at all."""
        return self._allowlist.allows_user(user_id) or self._allowlist.allows_group(group_id)

    def build_actor(self, user_id: int, group_id: int | None = None) -> ActorContext:
        predicate = None
        if self._group_admin_cache is not None:
            predicate = self._group_admin_cache.predicate_for(user_id)
        return ActorContext(
            user_id=user_id,
            group_id=group_id,
            is_admin=user_id in self._admins,
            is_allowlist_user=self._allowlist.allows_user(user_id),
            is_allowlist_group=self._allowlist.allows_group(group_id),
            is_group_admin=predicate,
        )

    async def check(
        self,
        user_id: int,
        group_id: int | None,
        target: TargetContext,
        action: PermissionAction,
    ) -> bool:
        return await self._manager.is_allowed(self.build_actor(user_id, group_id), target, action)
