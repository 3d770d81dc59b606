from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

from qmoji.policy.defaults import build_default_rules
from qmoji.policy.engine import PolicyManager


@pytest.fixture
def policy_path(tmp_path: Path) -> Path:
    return tmp_path / "policy.json"


@pytest.fixture
def manager(policy_path: Path) -> PolicyManager:
    return PolicyManager(policy_path, build_default_rules())


@pytest.fixture
def warnings_logged() -> Iterator[list[str]]:
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
