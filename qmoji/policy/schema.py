"""Policy rule schema for emoji save/read/remove access control."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PermissionScope = Literal["global", "group", "personal"]
PermissionAction = Literal["read", "create", "remove"]

PERMISSION_SCOPES: tuple[PermissionScope, ...] = ("global", "group", "personal")
PERMISSION_ACTIONS: tuple[PermissionAction, ...] = ("read", "create", "remove")


class SelectorType(str, Enum):
    """Closed set of selector kinds a rule can target."""

    ADMIN = "admin"
    ALLOWLIST_USER = "allowlist_user"
    EVERYONE = "everyone"
    USER = "user"
    GROUP = "group"
    GROUPADMIN = "groupadmin"
    OWNER = "owner"
    GROUP_MEMBER = "group_member"


class PolicyModel(BaseModel):
    """Base model for persisted policy data."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PolicySelector(PolicyModel):
    """Which actors a rule applies to."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    type: SelectorType
    value: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def key(self) -> tuple[str, str]:
        """Selector identity: type plus value (empty when unset)."""
        return self.type.value, self.value or ""

    def describe(self) -> str:
        if self.value:
            return f"{self.type.value}:{self.value}"
        return self.type.value


def sanitize_permissions(permissions: dict[str, Any]) -> dict[str, bool]:
    """Coerce a permission mapping to strict booleans for every action."""
    return {action: bool(permissions.get(action)) for action in PERMISSION_ACTIONS}


class PolicyRule(PolicyModel):
    """One allow/deny rule for a (scope, selector) identity."""

    id: str
    scope: PermissionScope
    selector: PolicySelector
    permissions: dict[str, bool] = Field(default_factory=dict)
    priority: int = 0
    created_at: int = Field(default=0, alias="createdAt")

    @field_validator("permissions", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> dict[str, bool]:
        if not isinstance(value, dict):
            value = {}
        return sanitize_permissions(value)

    @property
    def key(self) -> tuple[str, str, str]:
        return rule_key(self.scope, self.selector)

    def allows(self, action: PermissionAction) -> bool:
        return bool(self.permissions.get(action))

    def clone(self) -> PolicyRule:
        return self.model_copy(deep=True)


class PolicyStorage(PolicyModel):
    """Root of the persisted policy file."""

    custom: list[PolicyRule] = Field(default_factory=list)


def rule_key(scope: str, selector: PolicySelector) -> tuple[str, str, str]:
    """Identity of a rule within one rule set."""
    return (scope, *selector.key)


def format_permissions(permissions: dict[str, bool]) -> str:
    """Render permissions as a read/create/remove bit string, e.g. ``110``."""
    return "".join("1" if permissions.get(action) else "0" for action in PERMISSION_ACTIONS)
