"""Short-lived cache for group admin lookups."""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from loguru import logger

from qmoji.policy.context import GroupAdminPredicate

GroupAdminLookup = Callable[[str, int], Awaitable[bool]]


class GroupAdminCache:
    """Caches ``(group, user) -> is admin`` answers from the messaging transport.

    Failed lookups count as "not admin" and are cached for a shorter time.
    Expired entries are dropped whenever a lookup misses the cache.
    """

    def __init__(
        self,
        lookup: GroupAdminLookup,
        ttl_seconds: float = 30.0,
        failure_ttl_seconds: float = 10.0,
    ):
        self._lookup = lookup
        self._ttl_seconds = max(0.0, float(ttl_seconds))
        self._failure_ttl_seconds = max(0.0, float(failure_ttl_seconds))
        self._entries: dict[tuple[str, int], tuple[float, bool]] = {}

    async def is_group_admin(self, group_id: str, user_id: int) -> bool:
        key = (str(group_id), int(user_id))
        now = time.monotonic()
        cached = self._entries.get(key)
        if cached and cached[0] > now:
            return cached[1]
        self._prune(now)

        try:
            result = bool(await self._lookup(key[0], key[1]))
        except Exception as e:
            logger.warning(f"group admin lookup failed for user {user_id} in group {group_id}: {e}")
            self._entries[key] = (now + self._failure_ttl_seconds, False)
            return False

        self._entries[key] = (now + self._ttl_seconds, result)
        return result

    def _prune(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def predicate_for(self, user_id: int) -> GroupAdminPredicate:
        """Bind the cache to one actor for use as ``ActorContext.is_group_admin``."""

        async def _is_admin(group_id: str) -> bool:
            return await self.is_group_admin(group_id, user_id)

        return _is_admin
