"""Actor and target contexts for policy decisions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from qmoji.policy.schema import PermissionScope

GroupAdminPredicate = Callable[[str], Awaitable[bool]]


@dataclass(frozen=True, slots=True)
class TargetContext:
    """What is being accessed: a scope plus the owning user or group."""

    scope: PermissionScope
    owner_id: str | None = None
    group_id: str | None = None


@dataclass(slots=True)
class ActorContext:
    """Who is asking, from which group, with precomputed flags."""

    user_id: int
    group_id: int | None = None
    is_admin: bool = False
    is_allowlist_user: bool = False
    is_allowlist_group: bool = False
    is_group_admin: GroupAdminPredicate | None = None
