import json
from pathlib import Path

import pytest

from qmoji.config.loader import (
    _migrate_config_with_change,
    convert_keys,
    convert_to_camel,
    load_config,
    save_config,
)
from qmoji.config.schema import Config


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "config.json")

    assert config.napcat.ws_url == "ws://127.0.0.1:3001"
    assert config.admins == []
    assert config.policy.command_name == "perm"
    assert config.policy.policy_path == Path.home() / ".qmoji" / "policy.json"


def test_camel_case_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    config = Config(admins=[1, 2])
    config.napcat.ws_url = "ws://gateway:3001"
    config.policy.group_admin_cache_ttl_seconds = 45

    save_config(config, path)
    raw = json.loads(path.read_text())
    assert raw["napcat"]["wsUrl"] == "ws://gateway:3001"
    assert raw["policy"]["groupAdminCacheTtlSeconds"] == 45

    loaded = load_config(path)
    assert loaded.admins == [1, 2]
    assert loaded.napcat.ws_url == "ws://gateway:3001"
    assert loaded.policy.group_admin_cache_ttl_seconds == 45


def test_legacy_flat_keys_are_migrated_with_backup(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "napcatWs": "ws://legacy:3001",
                "napcatToken": "abc",
                "policyPath": "/srv/qmoji/policy.json",
                "admins": [10],
            }
        )
    )

    config = load_config(path)

    assert config.napcat.ws_url == "ws://legacy:3001"
    assert config.napcat.token == "abc"
    assert config.policy.policy_path == Path("/srv/qmoji/policy.json")
    rewritten = json.loads(path.read_text())
    assert "napcatWs" not in rewritten
    assert rewritten["configVersion"] == 2
    assert len(list(tmp_path.glob("config.backup.*.json"))) == 1


def test_current_config_is_not_rewritten() -> None:
    data = {"configVersion": 2, "napcat": {"wsUrl": "ws://x"}, "policy": {}}
    migrated, changed = _migrate_config_with_change(data)

    assert changed is False
    assert migrated == data


def test_invalid_config_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"admins": "everyone"}))

    assert load_config(path).admins == []


def test_non_object_root_is_rejected() -> None:
    with pytest.raises(ValueError):
        _migrate_config_with_change(["not", "a", "dict"])


def test_key_conversion_helpers() -> None:
    assert convert_keys({"napcat": {"wsUrl": 1}, "items": [{"timeoutSeconds": 2}]}) == {
        "napcat": {"ws_url": 1},
        "items": [{"timeout_seconds": 2}],
    }
    assert convert_to_camel({"group_admin_cache_ttl_seconds": 1}) == {"groupAdminCacheTtlSeconds": 1}


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QMOJI_NAPCAT__TOKEN", "from-env")

    assert Config().napcat.token == "from-env"
