"""Chat-facing permission command package."""

from qmoji.policy.admin.contracts import PolicyCommand, PolicyCommandResult
from qmoji.policy.admin.registry import PolicyCommandRegistry, PolicyCommandSpec
from qmoji.policy.admin.service import PolicyAdminService

__all__ = [
    "PolicyCommand",
    "PolicyCommandResult",
    "PolicyCommandRegistry",
    "PolicyCommandSpec",
    "PolicyAdminService",
]
