"""Configuration loading utilities."""

import json
import os
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from qmoji.config.schema import Config

CONFIG_VERSION = 2


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".qmoji" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                raw = json.load(f)

            migrated_raw, changed = _migrate_config_with_change(raw)
            validated = Config.model_validate(convert_keys(migrated_raw))
            if changed:
                _backup_config(path)
                _atomic_write_config(path, validated)
            return validated
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}; using default configuration")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    _atomic_write_config(path, config)


def _migrate_config_with_change(data: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """Migrate old config formats to current schema version.

    Returns:
        (migrated_data, changed)
    """
    if not isinstance(data, dict):
        raise ValueError("Config root must be a JSON object")

    original = json.dumps(data, sort_keys=True, separators=(",", ":"))
    data = json.loads(json.dumps(data))

    # Legacy flat gateway keys → napcat.*
    napcat = data.get("napcat")
    if not isinstance(napcat, dict):
        napcat = {}
        data["napcat"] = napcat
    if "napcatWs" in data and "wsUrl" not in napcat:
        napcat["wsUrl"] = data.pop("napcatWs")
    if "napcatToken" in data and "token" not in napcat:
        napcat["token"] = data.pop("napcatToken")
    data.pop("napcatWs", None)
    data.pop("napcatToken", None)

    # Legacy top-level policyPath → policy.path
    policy = data.get("policy")
    if not isinstance(policy, dict):
        policy = {}
        data["policy"] = policy
    if "policyPath" in data and "path" not in policy:
        policy["path"] = data.pop("policyPath")

    data["configVersion"] = CONFIG_VERSION
    changed = original != json.dumps(data, sort_keys=True, separators=(",", ":"))
    return data, changed


def _backup_config(path: Path) -> None:
    """Create timestamped backup of config before migration rewrite."""
    if not path.exists():
        return
    timestamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    backup = path.with_name(f"{path.stem}.backup.{timestamp}{path.suffix}")
    shutil.copy2(path, backup)
    try:
        backup.chmod(0o600)
    except OSError:
        pass


def _atomic_write_config(path: Path, config: Config) -> None:
    """Atomically write config as camelCase JSON with secure permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = convert_to_camel(config.model_dump())
    tmp_name = f".{path.name}.tmp-{os.getpid()}"
    tmp_path = path.with_name(tmp_name)
    with open(tmp_path, "w") as f:
        json.dump(data, f, indent=2)
    try:
        tmp_path.chmod(0o600)
    except OSError:
        pass
    os.replace(tmp_path, path)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
