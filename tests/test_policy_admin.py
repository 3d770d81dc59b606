from pathlib import Path

import pytest

from qmoji.policy.admin.registry import PolicyCommandRegistry
from qmoji.policy.admin.service import PolicyAdminService
from qmoji.policy.context import ActorContext
from qmoji.policy.engine import PolicyManager
from qmoji.policy.schema import SelectorType
from qmoji.storage.allowlist import AllowlistStore

ADMIN = ActorContext(user_id=1, group_id=100, is_admin=True, is_allowlist_user=True)
MEMBER = ActorContext(user_id=7, group_id=100, is_allowlist_user=True)


@pytest.fixture
def service(manager: PolicyManager) -> PolicyAdminService:
    return PolicyAdminService(manager)


def test_registry_parse_strips_command_name_and_aliases() -> None:
    registry = PolicyCommandRegistry("perm")

    command = registry.parse('perm grant personal "@7" read')
    assert command.subcommand == "grant"
    assert command.argv == ("personal", "@7", "read")
    assert registry.get_spec(command.subcommand).name == "allow"

    assert registry.parse("").subcommand == "help"
    assert registry.normalize_subcommand("RM") == "remove"
    assert registry.get_spec("nope") is None
    with pytest.raises(ValueError):
        registry.parse('perm set "unterminated')


@pytest.mark.asyncio
async def test_set_creates_then_updates(service: PolicyAdminService, manager: PolicyManager) -> None:
    created = await service.execute_from_text("perm set group 110 5", actor=ADMIN)
    assert created.ok and created.mutated
    assert created.message.startswith("Created rule group group:100 110 (priority 5)")

    updated = await service.execute_from_text("perm set group - 011", actor=ADMIN)
    assert updated.ok
    assert updated.message.startswith("Updated rule group group:100 011 (priority 5)")

    rules = manager.get_custom_rules()
    assert len(rules) == 1
    assert rules[0].permissions == {"read": False, "create": True, "remove": True}


@pytest.mark.asyncio
async def test_allow_and_deny_single_action(service: PolicyAdminService, manager: PolicyManager) -> None:
    denied = await service.execute_from_text("perm deny global remove", actor=ADMIN)
    assert denied.ok
    assert denied.command_name == "deny"

    allowed = await service.execute_from_text("perm allow personal @7 delete 3", actor=ADMIN)
    assert allowed.ok

    by_selector = {rule.selector.describe(): rule for rule in manager.get_custom_rules()}
    assert by_selector["everyone"].permissions == {"read": True, "create": True, "remove": False}
    assert by_selector["user:7"].priority == 3
    assert by_selector["user:7"].permissions["remove"] is True


@pytest.mark.asyncio
async def test_non_admin_cannot_mutate(service: PolicyAdminService, manager: PolicyManager) -> None:
    result = await service.execute_from_text("perm set global 111", actor=MEMBER)

    assert not result.ok
    assert result.message == "Permission command denied."
    assert manager.get_custom_rules() == []


@pytest.mark.asyncio
async def test_check_is_open_to_members(service: PolicyAdminService) -> None:
    result = await service.execute_from_text("perm check global remove", actor=MEMBER)

    assert result.ok
    assert result.message.startswith("remove on global: denied (default rule global everyone 110")


@pytest.mark.asyncio
async def test_check_group_scope_needs_group(service: PolicyAdminService) -> None:
    result = await service.execute_from_text("perm check group read", actor=ActorContext(user_id=7))
    assert not result.ok
    assert result.message.startswith("Invalid arguments:")


@pytest.mark.parametrize(
    "text",
    [
        "perm set global 1101",
        "perm set world 110",
        "perm allow global fly",
        "perm set group robot 110",
        "perm allow personal @7 read high",
        "perm set",
    ],
)
@pytest.mark.asyncio
async def test_invalid_arguments_do_not_mutate(
    service: PolicyAdminService,
    manager: PolicyManager,
    text: str,
) -> None:
    result = await service.execute_from_text(text, actor=ADMIN)

    assert not result.ok
    assert result.message.startswith("Invalid arguments:")
    assert manager.get_custom_rules() == []


@pytest.mark.asyncio
async def test_unknown_subcommand(service: PolicyAdminService) -> None:
    result = await service.execute_from_text("perm frobnicate", actor=ADMIN)
    assert not result.ok
    assert "Unknown command 'frobnicate'" in result.message


@pytest.mark.asyncio
async def test_remove_newest_or_all(service: PolicyAdminService, manager: PolicyManager) -> None:
    for group_id in ("1", "2", "3"):
        await service.execute_from_text(f"perm set group group:{group_id} 111", actor=ADMIN)

    one = await service.execute_from_text("perm remove group", actor=ADMIN)
    assert one.ok
    assert "group group:3" in one.message
    assert len(manager.get_custom_rules()) == 2

    rest = await service.execute_from_text("perm rm group all", actor=ADMIN)
    assert rest.ok
    assert rest.message.startswith("Removed 2 rule(s):")

    nothing = await service.execute_from_text("perm remove group", actor=ADMIN)
    assert not nothing.ok
    assert nothing.message == "No matching custom rule."


@pytest.mark.asyncio
async def test_remove_by_selector_and_priority(service: PolicyAdminService, manager: PolicyManager) -> None:
    await service.execute_from_text("perm set group groupadmin 111 20", actor=ADMIN)
    await service.execute_from_text("perm set group group:100 111 20", actor=ADMIN)

    result = await service.execute_from_text("perm remove group groupadmin 20", actor=ADMIN)

    assert result.ok
    remaining = manager.get_custom_rules()
    assert [rule.selector.type for rule in remaining] == [SelectorType.GROUP]


@pytest.mark.asyncio
async def test_list_and_help(service: PolicyAdminService) -> None:
    await service.execute_from_text("perm set global 100", actor=ADMIN)

    listing = await service.execute_from_text("perm ls", actor=ADMIN)
    assert listing.ok
    assert "- global everyone 100 (priority 0)" in listing.message
    assert "Default rules:" in listing.message

    help_result = await service.execute_from_text("perm", actor=MEMBER)
    assert help_result.ok
    assert "perm set <scope> [selector] <bits> [priority]" in help_result.message


@pytest.mark.asyncio
async def test_save_failure_is_reported(service: PolicyAdminService, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(storage, path=None) -> None:
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("qmoji.policy.engine.save_policy_storage", fail)
    result = await service.execute_from_text("perm set global 111", actor=ADMIN)

    assert not result.ok
    assert result.message.startswith("Failed to save policy:")


def test_usage_uses_configured_command_name(manager: PolicyManager) -> None:
    service = PolicyAdminService(manager, command_name="qperm")
    assert service.usage().splitlines()[1] == "qperm help"


@pytest.fixture
def allowlist(tmp_path: Path) -> AllowlistStore:
    return AllowlistStore(tmp_path / "allowlist.json", seed_users=[1])


@pytest.fixture
def gated_service(manager: PolicyManager, allowlist: AllowlistStore) -> PolicyAdminService:
    return PolicyAdminService(manager, allowlist=allowlist)


@pytest.mark.asyncio
async def test_enable_and_disable_current_group(gated_service: PolicyAdminService, allowlist: AllowlistStore) -> None:
    enabled = await gated_service.execute_from_text("perm enable", actor=MEMBER)
    assert enabled.ok and enabled.mutated
    assert allowlist.allows_group(100)

    again = await gated_service.execute_from_text("perm enable", actor=MEMBER)
    assert again.ok and not again.mutated
    assert again.message == "This group is already allowed."

    disabled = await gated_service.execute_from_text("perm disable", actor=MEMBER)
    assert disabled.ok and disabled.mutated
    assert not allowlist.allows_group(100)

    missing = await gated_service.execute_from_text("perm disable", actor=MEMBER)
    assert missing.message == "This group is not on the allowlist."


@pytest.mark.asyncio
async def test_enable_outside_group_is_rejected(gated_service: PolicyAdminService, allowlist: AllowlistStore) -> None:
    result = await gated_service.execute_from_text("perm enable", actor=ActorContext(user_id=1, is_admin=True))

    assert not result.ok
    assert result.message == "This command only works inside a group."
    assert allowlist.groups == []


@pytest.mark.asyncio
async def test_allowlist_listing_and_user_changes(
    gated_service: PolicyAdminService,
    allowlist: AllowlistStore,
) -> None:
    added = await gated_service.execute_from_text("perm allowlist add @42", actor=ADMIN)
    assert added.ok and added.mutated
    assert allowlist.allows_user(42)

    duplicate = await gated_service.execute_from_text("perm allowlist add user:42", actor=ADMIN)
    assert duplicate.message == "User 42 is already allowed."

    listing = await gated_service.execute_from_text("perm al", actor=ADMIN)
    assert listing.message == "Allowlist\nUsers:\n- 1\n- 42\nGroups:\n- none"

    removed = await gated_service.execute_from_text("perm allowlist remove 42", actor=ADMIN)
    assert removed.ok and removed.mutated
    assert allowlist.users == [1]


@pytest.mark.asyncio
async def test_allowlist_is_admin_only(gated_service: PolicyAdminService, allowlist: AllowlistStore) -> None:
    result = await gated_service.execute_from_text("perm allowlist add @7", actor=MEMBER)

    assert not result.ok
    assert result.message == "Permission command denied."
    assert not allowlist.allows_user(7)


@pytest.mark.parametrize("text", ["perm allowlist add", "perm allowlist add @bob", "perm allowlist purge @7"])
@pytest.mark.asyncio
async def test_allowlist_bad_arguments(gated_service: PolicyAdminService, text: str) -> None:
    result = await gated_service.execute_from_text(text, actor=ADMIN)

    assert not result.ok
    assert result.message.startswith("Invalid arguments:")


@pytest.mark.asyncio
async def test_allowlist_commands_need_a_store(service: PolicyAdminService) -> None:
    result = await service.execute_from_text("perm enable", actor=ADMIN)

    assert not result.ok
    assert "not available" in result.message
