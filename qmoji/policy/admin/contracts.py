"""Contracts for permission command execution."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PolicyCommand:
    """Normalized permission command envelope."""

    subcommand: str
    argv: tuple[str, ...]
    raw_text: str


@dataclass(frozen=True, slots=True)
class PolicyCommandResult:
    """Outcome reported back to the chat or CLI caller."""

    ok: bool
    message: str
    mutated: bool = False
    command_name: str = ""
