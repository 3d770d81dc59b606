import json
from pathlib import Path

from qmoji.policy.loader import ensure_policy_file, load_policy_storage, save_policy_storage
from qmoji.policy.schema import PolicyRule, PolicySelector, PolicyStorage, SelectorType


def _rule(rule_id: str, **overrides) -> PolicyRule:
    data = {
        "id": rule_id,
        "scope": "group",
        "selector": PolicySelector(type=SelectorType.GROUP, value="100"),
        "permissions": {"read": True, "create": False, "remove": True},
        "priority": 4,
        "created_at": 1700000000000,
    }
    data.update(overrides)
    return PolicyRule(**data)


def test_missing_file_is_created_empty(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "policy.json"

    storage = load_policy_storage(path)

    assert storage.custom == []
    assert json.loads(path.read_text()) == {"custom": []}


def test_corrupt_file_yields_empty_and_is_left_alone(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    path.write_text("{not json")

    assert load_policy_storage(path).custom == []
    assert path.read_text() == "{not json"


def test_missing_custom_key_yields_empty(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"rules": []}))
    assert load_policy_storage(path).custom == []

    path.write_text(json.dumps(["not", "an", "object"]))
    assert load_policy_storage(path).custom == []


def test_malformed_custom_entry_warns(tmp_path: Path, warnings_logged: list[str]) -> None:
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"custom": {"id": "not-a-list"}}))

    assert load_policy_storage(path).custom == []
    assert any("non-list 'custom'" in message for message in warnings_logged)
    assert json.loads(path.read_text()) == {"custom": {"id": "not-a-list"}}


def test_invalid_entries_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    good = _rule("good").model_dump(mode="json", by_alias=True)
    path.write_text(
        json.dumps(
            {
                "custom": [
                    good,
                    {"id": "bad-scope", "scope": "planet", "selector": {"type": "everyone"}},
                    {"id": "bad-selector", "scope": "global", "selector": {"type": "robot"}},
                    "garbage",
                ]
            }
        )
    )

    assert [rule.id for rule in load_policy_storage(path).custom] == ["good"]


def test_older_entries_get_field_defaults(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    path.write_text(
        json.dumps(
            {
                "custom": [
                    {
                        "id": "legacy",
                        "scope": "personal",
                        "selector": {"type": "user", "value": 12345},
                        "permissions": {"read": 1, "remove": 0},
                    }
                ]
            }
        )
    )

    rule = load_policy_storage(path).custom[0]
    assert rule.selector.value == "12345"
    assert rule.permissions == {"read": True, "create": False, "remove": False}
    assert rule.priority == 0
    assert rule.created_at == 0


def test_save_then_load_is_field_exact(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    rules = [
        _rule("a"),
        _rule("b", scope="global", selector=PolicySelector(type=SelectorType.EVERYONE), priority=-2),
        _rule("c", scope="personal", selector=PolicySelector(type=SelectorType.OWNER), created_at=5),
    ]

    save_policy_storage(PolicyStorage(custom=rules), path)
    loaded = load_policy_storage(path)

    assert [rule.model_dump() for rule in loaded.custom] == [rule.model_dump() for rule in rules]


def test_saved_file_uses_camel_case_timestamp(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    save_policy_storage(PolicyStorage(custom=[_rule("a")]), path)

    entry = json.loads(path.read_text())["custom"][0]
    assert entry["createdAt"] == 1700000000000
    assert entry["selector"] == {"type": "group", "value": "100"}
    assert not list(tmp_path.glob("*.tmp"))


def test_ensure_policy_file_keeps_existing(tmp_path: Path) -> None:
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"custom": [_rule("keep").model_dump(mode="json", by_alias=True)]}))

    assert ensure_policy_file(path) == path
    assert [rule.id for rule in load_policy_storage(path).custom] == ["keep"]
