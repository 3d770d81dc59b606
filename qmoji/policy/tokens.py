"""Parsers for scope, selector, action, priority and bit-string tokens."""

from __future__ import annotations

import re

from qmoji.policy.schema import (
    PERMISSION_ACTIONS,
    PermissionAction,
    PermissionScope,
    PolicySelector,
    SelectorType,
)

_SCOPE_ALIASES: dict[str, PermissionScope] = {
    **{alias: "global" for alias in ("global", "g", "all", "public")},
    **{alias: "group" for alias in ("group", "c", "chat", "channel", "guild")},
    **{alias: "personal" for alias in ("personal", "p", "user", "private", "person", "self")},
}

_ACTION_ALIASES: dict[str, PermissionAction] = {
    **{alias: "read" for alias in ("read", "view", "r", "v")},
    **{alias: "create" for alias in ("create", "save", "write", "c", "w", "s")},
    **{alias: "remove" for alias in ("remove", "delete", "del", "d", "rm")},
}

# Selector kinds whose value falls back to the current group.
_GROUP_VALUED = {SelectorType.GROUP, SelectorType.GROUPADMIN, SelectorType.GROUP_MEMBER}

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_BITS_RE = re.compile(r"^[01]{3}$")


class PolicyTokenError(ValueError):
    """A command token could not be parsed."""


def is_scope_token(token: str) -> bool:
    return token.strip().lower() in _SCOPE_ALIASES


def parse_scope(token: str) -> PermissionScope:
    scope = _SCOPE_ALIASES.get(token.strip().lower())
    if scope is None:
        raise PolicyTokenError(f"unknown scope '{token}' (expected global, group or personal)")
    return scope


def parse_action(token: str) -> PermissionAction:
    action = _ACTION_ALIASES.get(token.strip().lower())
    if action is None:
        raise PolicyTokenError(f"unknown action '{token}' (expected read, create or remove)")
    return action


def is_integer_token(token: str) -> bool:
    return bool(_INTEGER_RE.match(token.strip()))


def parse_priority(token: str) -> int:
    if not is_integer_token(token):
        raise PolicyTokenError(f"priority must be an integer, got '{token}'")
    return int(token.strip())


def parse_user_id(token: str) -> int:
    """Parse ``@<id>``, ``user:<id>`` or a bare id."""
    text = token.strip()
    if text.startswith("@"):
        text = text[1:]
    elif text.lower().startswith("user:"):
        text = text[len("user:"):]
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise PolicyTokenError(f"cannot recognize user '{token}', mention them as @<user id>")
    return int(text)


def is_permission_bits(token: str) -> bool:
    return bool(_BITS_RE.match(token.strip()))


def parse_permission_bits(token: str) -> dict[str, bool]:
    """Parse a ``read/create/remove`` bit string such as ``110``."""
    text = token.strip()
    if not _BITS_RE.match(text):
        raise PolicyTokenError(
            f"permission bits must be exactly 3 characters of 0/1 (read, create, remove), got '{token}'"
        )
    return {action: bit == "1" for action, bit in zip(PERMISSION_ACTIONS, text)}


def is_action_token(token: str) -> bool:
    return token.strip().lower() in _ACTION_ALIASES


def _default_selector(scope: PermissionScope, user_id: int | None, group_id: int | None) -> PolicySelector:
    if scope == "global":
        return PolicySelector(type=SelectorType.EVERYONE)
    if scope == "personal":
        if user_id is None:
            raise PolicyTokenError("no acting user for the default personal selector")
        return PolicySelector(type=SelectorType.USER, value=str(user_id))
    if group_id is None:
        raise PolicyTokenError("the default group selector is only available inside a group")
    return PolicySelector(type=SelectorType.GROUP, value=str(group_id))


def parse_selector(
    token: str | None,
    scope: PermissionScope,
    *,
    user_id: int | None = None,
    group_id: int | None = None,
) -> PolicySelector:
    """Parse ``-``, ``@<id>``, ``type`` or ``type:value`` into a selector."""
    text = (token or "").strip()
    if not text or text == "-":
        return _default_selector(scope, user_id, group_id)

    if text.startswith("@"):
        target = text[1:].strip()
        if not target.isdigit():
            raise PolicyTokenError(f"invalid user mention '{token}'")
        return PolicySelector(type=SelectorType.USER, value=target)

    kind_text, _, value = text.partition(":")
    try:
        kind = SelectorType(kind_text.strip().lower())
    except ValueError:
        raise PolicyTokenError(f"unknown selector '{token}'") from None
    value = value.strip()

    if not value and kind in _GROUP_VALUED:
        if group_id is None:
            raise PolicyTokenError(f"selector '{kind.value}' needs a group id outside of a group")
        value = str(group_id)
    if not value and kind == SelectorType.USER:
        raise PolicyTokenError("selector 'user' needs a user id, e.g. user:12345")
    return PolicySelector(type=kind, value=value or None)


def split_rule_args(argv: list[str]) -> tuple[str | None, str, str | None]:
    """Split ``[selector] <action-or-bits> [priority]`` into its parts."""
    args = [arg for arg in argv if arg.strip()]
    if not args:
        raise PolicyTokenError("missing action or permission bits")
    if len(args) > 3:
        raise PolicyTokenError(f"too many arguments: {' '.join(args)}")
    if len(args) == 3:
        return args[0], args[1], args[2]
    if len(args) == 2:
        first, second = args
        if is_action_token(first) or is_permission_bits(first):
            return None, first, second
        return first, second, None
    return None, args[0], None
