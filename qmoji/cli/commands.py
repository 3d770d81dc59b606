"""CLI entrypoint wiring all command groups."""

from __future__ import annotations

from . import allowlist_commands as _allowlist_commands  # noqa: F401
from . import policy_commands as _policy_commands  # noqa: F401
from .core import app

__all__ = ["app"]
