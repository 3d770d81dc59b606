"""Parser and command registry for permission commands."""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from qmoji.policy.admin.contracts import PolicyCommand


@dataclass(frozen=True, slots=True)
class PolicyCommandSpec:
    """Static metadata for one permission subcommand."""

    name: str
    mutating: bool
    admin_only: bool = True


class PolicyCommandRegistry:
    """Command parser and subcommand metadata."""

    def __init__(self, command_name: str = "perm") -> None:
        self.command_name = command_name
        self._specs: dict[str, PolicyCommandSpec] = {
            "help": PolicyCommandSpec("help", mutating=False, admin_only=False),
            "check": PolicyCommandSpec("check", mutating=False, admin_only=False),
            "list": PolicyCommandSpec("list", mutating=False),
            "set": PolicyCommandSpec("set", mutating=True),
            "allow": PolicyCommandSpec("allow", mutating=True),
            "deny": PolicyCommandSpec("deny", mutating=True),
            "remove": PolicyCommandSpec("remove", mutating=True),
            "enable": PolicyCommandSpec("enable", mutating=True, admin_only=False),
            "disable": PolicyCommandSpec("disable", mutating=True, admin_only=False),
            "allowlist": PolicyCommandSpec("allowlist", mutating=True),
        }
        self._aliases = {
            "ls": "list",
            "grant": "allow",
            "revoke": "deny",
            "rm": "remove",
            "del": "remove",
            "delete": "remove",
            "al": "allowlist",
        }

    def parse(self, raw_text: str) -> PolicyCommand:
        """Parse ``[<command name>] <subcommand> args...``."""
        compact = raw_text.strip()
        try:
            tokens = shlex.split(compact)
        except ValueError as e:
            raise ValueError(f"invalid command syntax: {e}") from e

        if tokens and tokens[0].strip().lower() == self.command_name:
            tokens = tokens[1:]

        subcommand = "help"
        argv: tuple[str, ...] = ()
        if tokens:
            subcommand = tokens[0].strip().lower() or "help"
            argv = tuple(tokens[1:])
        return PolicyCommand(subcommand=subcommand, argv=argv, raw_text=compact)

    def normalize_subcommand(self, name: str) -> str:
        key = (name or "").strip().lower()
        if not key:
            return "help"
        return self._aliases.get(key, key)

    def get_spec(self, subcommand: str) -> PolicyCommandSpec | None:
        return self._specs.get(self.normalize_subcommand(subcommand))

    def usage_lines(self) -> tuple[str, ...]:
        name = self.command_name
        return (
            "Permission commands:",
            f"{name} help",
            f"{name} check <scope> <action>",
            f"{name} list",
            f"{name} set <scope> [selector] <bits> [priority]",
            f"{name} allow <scope> [selector] <action> [priority]",
            f"{name} deny <scope> [selector] <action> [priority]",
            f"{name} remove [scope] [selector] [priority] [all]",
            f"{name} enable | disable (inside a group)",
            f"{name} allowlist [add|remove @<user id>]",
            "scope: global | group | personal",
            "action: read | create | remove",
            "bits: read/create/remove as 0/1, e.g. 110",
            "selector: - | @<user id> | admin | everyone | owner | group[:id] | groupadmin[:id] "
            "| group_member[:id] | user:<id>",
        )
