"""Policy file loading utilities."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from qmoji.policy.schema import PolicyRule, PolicyStorage


def get_policy_path() -> Path:
    """Get the default policy file path."""
    return Path.home() / ".qmoji" / "policy.json"


def ensure_policy_file(path: Path | None = None) -> Path:
    """Create policy file with an empty custom rule list if missing."""
    policy_path = path or get_policy_path()
    if not policy_path.exists():
        save_policy_storage(PolicyStorage(), policy_path)
    return policy_path


def load_policy_storage(path: Path | None = None) -> PolicyStorage:
    """Load custom rules from disk.

    A missing file is created empty. A file that cannot be parsed, or that has
    no ``custom`` list, yields an empty storage and is left untouched until the
    next save.
    """
    policy_path = ensure_policy_file(path)
    try:
        with open(policy_path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read policy file {policy_path}: {e}; using empty rule set")
        return PolicyStorage()

    if not isinstance(raw, dict):
        logger.warning(f"Policy file {policy_path} root is not an object; using empty rule set")
        return PolicyStorage()

    entries = raw.get("custom")
    if entries is None:
        return PolicyStorage()
    if not isinstance(entries, list):
        logger.warning(f"Policy file {policy_path} has a non-list 'custom' entry; using empty rule set")
        return PolicyStorage()

    rules: list[PolicyRule] = []
    for index, entry in enumerate(entries):
        try:
            rules.append(PolicyRule.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping invalid rule #{index} in {policy_path}: {e.error_count()} error(s)")
    return PolicyStorage(custom=rules)


def save_policy_storage(storage: PolicyStorage, path: Path | None = None) -> None:
    """Overwrite the policy file with the given storage."""
    policy_path = path or get_policy_path()
    policy_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = policy_path.with_suffix(f"{policy_path.suffix}.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(
            storage.model_dump(mode="json", by_alias=True, exclude_none=True),
            f,
            indent=2,
            ensure_ascii=False,
        )
    tmp_path.replace(policy_path)
