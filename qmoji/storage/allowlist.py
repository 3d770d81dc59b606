"""Allowlist of users and groups permitted to use the bot."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class Allowlist(BaseModel):
    """Persisted allowlist payload."""

    model_config = ConfigDict(extra="ignore")

    users: list[int] = Field(default_factory=list)
    groups: list[int] = Field(default_factory=list)


class AllowlistStore:
    """JSON-backed allowlist. A missing file is seeded with the given users."""

    def __init__(self, path: Path, seed_users: list[int] | None = None) -> None:
        self.path = path
        if not path.exists():
            self._data = Allowlist(users=list(dict.fromkeys(seed_users or [])))
            self._save()
        else:
            self._data = self._load()

    def _load(self) -> Allowlist:
        try:
            with open(self.path, encoding="utf-8") as f:
                return Allowlist.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load allowlist from {self.path}: {e}; starting empty")
            return Allowlist()

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(f"{self.path.suffix}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data.model_dump(), f, indent=2)
        tmp_path.replace(self.path)

    @property
    def users(self) -> list[int]:
        return list(self._data.users)

    @property
    def groups(self) -> list[int]:
        return list(self._data.groups)

    def allows_user(self, user_id: int) -> bool:
        return user_id in self._data.users

    def allows_group(self, group_id: int | None) -> bool:
        return group_id is not None and group_id in self._data.groups

    def _update(self, values: list[int], value: int, *, add: bool) -> bool:
        present = value in values
        if present == add:
            return False
        if add:
            values.append(value)
        else:
            values.remove(value)
        self._save()
        return True

    def add_user(self, user_id: int) -> bool:
        changed = self._update(self._data.users, user_id, add=True)
        if changed:
            logger.info("allowlist: added user {}", user_id)
        return changed

    def remove_user(self, user_id: int) -> bool:
        changed = self._update(self._data.users, user_id, add=False)
        if changed:
            logger.info("allowlist: removed user {}", user_id)
        return changed

    def add_group(self, group_id: int) -> bool:
        changed = self._update(self._data.groups, group_id, add=True)
        if changed:
            logger.info("allowlist: added group {}", group_id)
        return changed

    def remove_group(self, group_id: int) -> bool:
        changed = self._update(self._data.groups, group_id, add=False)
        if changed:
            logger.info("allowlist: removed group {}", group_id)
        return changed
