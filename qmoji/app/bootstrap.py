"""Runtime wiring for the permission policy stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from qmoji.channels.napcat import NapCatClient
from qmoji.policy.admin.service import PolicyAdminService
from qmoji.policy.defaults import build_default_rules
from qmoji.policy.engine import PolicyManager
from qmoji.policy.group_admin import GroupAdminCache
from qmoji.policy.middleware import PolicyGate
from qmoji.storage.allowlist import AllowlistStore

if TYPE_CHECKING:
    from qmoji.config.schema import Config


@dataclass(slots=True)
class PolicyRuntime:
    """Everything a message handler needs to authorize and administer emoji."""

    manager: PolicyManager
    allowlist: AllowlistStore
    gate: PolicyGate
    admin: PolicyAdminService


def build_policy_runtime(config: "Config") -> PolicyRuntime:
    """Create the policy manager, allowlist, group-admin cache and command service."""
    policy_path = config.policy.policy_path
    manager = PolicyManager(policy_path, build_default_rules())
    allowlist = AllowlistStore(config.allowlist_file, seed_users=config.admins)
    napcat = NapCatClient(
        config.napcat.ws_url,
        token=config.napcat.token,
        timeout_seconds=config.napcat.timeout_seconds,
    )
    cache = GroupAdminCache(
        napcat.is_group_admin,
        ttl_seconds=config.policy.group_admin_cache_ttl_seconds,
        failure_ttl_seconds=config.policy.group_admin_failure_ttl_seconds,
    )
    gate = PolicyGate(manager, allowlist, config.admins, group_admin_cache=cache)
    admin = PolicyAdminService(manager, command_name=config.policy.command_name, allowlist=allowlist)
    logger.info(
        "policy runtime ready ({} custom rule(s) from {})",
        len(manager.get_custom_rules()),
        policy_path,
    )
    return PolicyRuntime(manager=manager, allowlist=allowlist, gate=gate, admin=admin)
