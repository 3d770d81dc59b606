"""Permission command service shared by the chat and CLI surfaces."""

from __future__ import annotations

from typing import Awaitable, Callable

from loguru import logger

from qmoji.policy.admin.contracts import PolicyCommand, PolicyCommandResult
from qmoji.policy.admin.registry import PolicyCommandRegistry
from qmoji.policy.context import ActorContext
from qmoji.policy.engine import PolicyManager, RuleUpdate
from qmoji.policy.middleware import target_for_scope
from qmoji.policy.schema import PermissionScope, PolicyRule, PolicySelector, format_permissions
from qmoji.policy.tokens import (
    PolicyTokenError,
    is_integer_token,
    is_scope_token,
    parse_action,
    parse_permission_bits,
    parse_priority,
    parse_scope,
    parse_selector,
    parse_user_id,
    split_rule_args,
)
from qmoji.storage.allowlist import AllowlistStore

Handler = Callable[[ActorContext, tuple[str, ...]], Awaitable[PolicyCommandResult]]

_REMOVE_ALL_FLAGS = {"all", "--all"}


def _describe_rule(rule: PolicyRule) -> str:
    return (
        f"{rule.scope} {rule.selector.describe()} "
        f"{format_permissions(rule.permissions)} (priority {rule.priority})"
    )


class PolicyAdminService:
    """Executes permission and allowlist commands from chat or the CLI."""

    def __init__(
        self,
        manager: PolicyManager,
        command_name: str = "perm",
        allowlist: AllowlistStore | None = None,
    ) -> None:
        self._manager = manager
        self._allowlist = allowlist
        self._registry = PolicyCommandRegistry(command_name)

    @property
    def registry(self) -> PolicyCommandRegistry:
        return self._registry

    def usage(self) -> str:
        return "\n".join(self._registry.usage_lines())

    async def execute_from_text(self, raw_text: str, *, actor: ActorContext) -> PolicyCommandResult:
        try:
            command = self._registry.parse(raw_text)
        except ValueError as e:
            return PolicyCommandResult(ok=False, message=f"Invalid command: {e}")
        return await self.execute(command, actor=actor)

    async def execute(self, command: PolicyCommand, *, actor: ActorContext) -> PolicyCommandResult:
        subcommand = self._registry.normalize_subcommand(command.subcommand)
        spec = self._registry.get_spec(subcommand)
        if spec is None:
            return PolicyCommandResult(
                ok=False,
                message=f"Unknown command '{subcommand}'. Try {self._registry.command_name} help.",
                command_name=subcommand,
            )
        if spec.admin_only and not actor.is_admin:
            return PolicyCommandResult(ok=False, message="Permission command denied.", command_name=subcommand)

        handlers: dict[str, Handler] = {
            "help": self._handle_help,
            "check": self._handle_check,
            "list": self._handle_list,
            "set": self._handle_set,
            "allow": self._handle_allow,
            "deny": self._handle_deny,
            "remove": self._handle_remove,
            "enable": self._handle_enable,
            "disable": self._handle_disable,
            "allowlist": self._handle_allowlist,
        }
        try:
            result = await handlers[spec.name](actor, command.argv)
        except PolicyTokenError as e:
            return PolicyCommandResult(ok=False, message=f"Invalid arguments: {e}", command_name=spec.name)
        except OSError as e:
            logger.error(f"permission command '{command.raw_text}' failed to persist: {e}")
            return PolicyCommandResult(ok=False, message=f"Failed to save policy: {e}", command_name=spec.name)

        if spec.mutating and result.mutated:
            logger.info("permission command by {}: {}", actor.user_id, command.raw_text)
        return result

    async def _handle_help(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        return PolicyCommandResult(ok=True, message=self.usage(), command_name="help")

    async def _handle_check(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        if len(argv) != 2:
            raise PolicyTokenError(f"usage: {self._registry.command_name} check <scope> <action>")
        scope = parse_scope(argv[0])
        action = parse_action(argv[1])
        if scope == "group" and actor.group_id is None:
            raise PolicyTokenError("group scope can only be checked inside a group")

        target = target_for_scope(scope, actor.user_id, actor.group_id)
        decision = await self._manager.explain(actor, target)
        verdict = "allowed" if decision.allows(action) else "denied"
        if decision.rule is None:
            reason = "no matching rule"
        else:
            reason = f"{decision.source} rule {_describe_rule(decision.rule)}"
        return PolicyCommandResult(ok=True, message=f"{action} on {scope}: {verdict} ({reason})", command_name="check")

    async def _handle_list(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        listing = self._manager.list_rules()
        lines = ["Custom rules (read/create/remove):"]
        lines.extend(f"- {_describe_rule(rule)}" for rule in listing.custom)
        if not listing.custom:
            lines.append("- none")
        lines.append("Default rules:")
        lines.extend(f"- {_describe_rule(rule)}" for rule in listing.defaults)
        return PolicyCommandResult(ok=True, message="\n".join(lines), command_name="list")

    def _parse_rule_target(
        self, actor: ActorContext, argv: tuple[str, ...]
    ) -> tuple[PermissionScope, PolicySelector, str, int | None]:
        if not argv:
            raise PolicyTokenError("missing scope")
        scope = parse_scope(argv[0])
        selector_token, value_token, priority_token = split_rule_args(list(argv[1:]))
        selector = parse_selector(selector_token, scope, user_id=actor.user_id, group_id=actor.group_id)
        priority = parse_priority(priority_token) if priority_token is not None else None
        return scope, selector, value_token, priority

    @staticmethod
    def _update_result(update: RuleUpdate, command_name: str) -> PolicyCommandResult:
        verb = "Created" if update.created else "Updated"
        return PolicyCommandResult(
            ok=True,
            message=f"{verb} rule {_describe_rule(update.rule)}",
            mutated=True,
            command_name=command_name,
        )

    async def _handle_set(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        scope, selector, value_token, priority = self._parse_rule_target(actor, argv)
        permissions = parse_permission_bits(value_token)
        update = self._manager.set_rule_permissions(scope, selector, priority, permissions)
        return self._update_result(update, "set")

    async def _set_single(self, actor: ActorContext, argv: tuple[str, ...], value: bool) -> PolicyCommandResult:
        scope, selector, value_token, priority = self._parse_rule_target(actor, argv)
        action = parse_action(value_token)
        update = self._manager.update_single_permission(scope, selector, priority, action, value)
        return self._update_result(update, "allow" if value else "deny")

    async def _handle_allow(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        return await self._set_single(actor, argv, True)

    async def _handle_deny(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        return await self._set_single(actor, argv, False)

    async def _handle_remove(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        remove_all = any(arg.strip().lower() in _REMOVE_ALL_FLAGS for arg in argv)
        rest = [arg for arg in argv if arg.strip() and arg.strip().lower() not in _REMOVE_ALL_FLAGS]

        scope = parse_scope(rest.pop(0)) if rest and is_scope_token(rest[0]) else None
        priority = parse_priority(rest.pop()) if rest and is_integer_token(rest[-1]) else None
        selector = None
        if rest:
            token = rest.pop(0)
            if scope is None and token.strip() in ("", "-"):
                raise PolicyTokenError("the default selector needs a scope")
            selector = parse_selector(token, scope or "global", user_id=actor.user_id, group_id=actor.group_id)
        if rest:
            raise PolicyTokenError(f"unexpected arguments: {' '.join(rest)}")

        removed = self._manager.remove_rules(scope, selector, priority, remove_all=remove_all)
        if not removed:
            return PolicyCommandResult(ok=False, message="No matching custom rule.", command_name="remove")
        lines = [f"Removed {len(removed)} rule(s):"]
        lines.extend(f"- {_describe_rule(rule)}" for rule in removed)
        return PolicyCommandResult(ok=True, message="\n".join(lines), mutated=True, command_name="remove")

    def _require_allowlist(self) -> AllowlistStore:
        if self._allowlist is None:
            raise PolicyTokenError("allowlist commands are not available here")
        return self._allowlist

    async def _toggle_group(self, actor: ActorContext, argv: tuple[str, ...], enable: bool) -> PolicyCommandResult:
        name = "enable" if enable else "disable"
        allowlist = self._require_allowlist()
        if argv:
            raise PolicyTokenError(f"usage: {self._registry.command_name} {name}")
        if actor.group_id is None:
            return PolicyCommandResult(ok=False, message="This command only works inside a group.", command_name=name)

        if enable:
            if not allowlist.add_group(actor.group_id):
                return PolicyCommandResult(ok=True, message="This group is already allowed.", command_name=name)
            message = "Added this group to the allowlist."
        else:
            if not allowlist.remove_group(actor.group_id):
                return PolicyCommandResult(ok=True, message="This group is not on the allowlist.", command_name=name)
            message = "Removed this group from the allowlist."
        return PolicyCommandResult(ok=True, message=message, mutated=True, command_name=name)

    async def _handle_enable(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        return await self._toggle_group(actor, argv, True)

    async def _handle_disable(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        return await self._toggle_group(actor, argv, False)

    async def _handle_allowlist(self, actor: ActorContext, argv: tuple[str, ...]) -> PolicyCommandResult:
        allowlist = self._require_allowlist()
        if not argv:
            lines = ["Allowlist", "Users:"]
            lines.extend(f"- {user_id}" for user_id in allowlist.users)
            if not allowlist.users:
                lines.append("- none")
            lines.append("Groups:")
            lines.extend(f"- {group_id}" for group_id in allowlist.groups)
            if not allowlist.groups:
                lines.append("- none")
            return PolicyCommandResult(ok=True, message="\n".join(lines), command_name="allowlist")

        operation = argv[0].strip().lower()
        if operation not in ("add", "remove") or len(argv) != 2:
            raise PolicyTokenError(f"usage: {self._registry.command_name} allowlist [add|remove @<user id>]")
        user_id = parse_user_id(argv[1])

        if operation == "add":
            if not allowlist.add_user(user_id):
                return PolicyCommandResult(
                    ok=True, message=f"User {user_id} is already allowed.", command_name="allowlist"
                )
            message = f"Added user {user_id} to the allowlist."
        else:
            if not allowlist.remove_user(user_id):
                return PolicyCommandResult(
                    ok=True, message=f"User {user_id} is not on the allowlist.", command_name="allowlist"
                )
            message = f"Removed user {user_id} from the allowlist."
        return PolicyCommandResult(ok=True, message=message, mutated=True, command_name="allowlist")
