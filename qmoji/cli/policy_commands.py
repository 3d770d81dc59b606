"""Policy CLI commands."""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from .core import app, console, make_runtime

policy_app = typer.Typer(help="Manage emoji permission rules")
app.add_typer(policy_app, name="policy")


@policy_app.command("path")
def policy_path_cmd() -> None:
    """Show policy file location."""
    from qmoji.config.loader import load_config

    console.print(load_config().policy.policy_path)


@policy_app.command("list")
def policy_list() -> None:
    """List custom and default rules in resolution order."""
    from qmoji.policy.schema import format_permissions

    _, runtime = make_runtime()
    listing = runtime.manager.list_rules()

    table = Table(title="Permission rules")
    table.add_column("Source", style="cyan")
    table.add_column("Scope")
    table.add_column("Selector")
    table.add_column("R/C/D")
    table.add_column("Priority", justify="right")
    table.add_column("ID", style="dim")
    for source, rules in (("custom", listing.custom), ("default", listing.defaults)):
        for rule in rules:
            table.add_row(
                source,
                rule.scope,
                rule.selector.describe(),
                format_permissions(rule.permissions),
                str(rule.priority),
                rule.id,
            )
    console.print(table)


@policy_app.command("cmd")
def policy_cmd(
    command: str = typer.Argument(..., help='Permission command, e.g. "set group group:123 110 10"'),
    user_id: int = typer.Option(0, "--user", "-u", help="Acting user id (for default selectors)"),
    group_id: int | None = typer.Option(None, "--group", "-g", help="Current group id"),
) -> None:
    """Execute one permission command as a local administrator."""
    from qmoji.policy.context import ActorContext

    _, runtime = make_runtime()
    actor = ActorContext(user_id=user_id, group_id=group_id, is_admin=True)
    result = asyncio.run(runtime.admin.execute_from_text(command, actor=actor))
    if result.message:
        console.print(result.message)
    if not result.ok:
        raise typer.Exit(1)


@policy_app.command("check")
def policy_check(
    user_id: int = typer.Option(..., "--user", "-u", help="User id"),
    action: str = typer.Option(..., "--action", "-a", help="read, create or remove"),
    scope: str = typer.Option("personal", "--scope", "-s", help="global, group or personal"),
    group_id: int | None = typer.Option(None, "--group", "-g", help="Group the user is in"),
    owner: str | None = typer.Option(None, "--owner", help="Owner key (global, chat-<gid>, <uid>)"),
) -> None:
    """Explain the decision for one user, target and action."""
    from qmoji.policy.middleware import target_for_owner, target_for_scope
    from qmoji.policy.tokens import PolicyTokenError, parse_action, parse_scope

    try:
        parsed_action = parse_action(action)
        target = target_for_owner(owner) if owner else target_for_scope(parse_scope(scope), user_id, group_id)
    except PolicyTokenError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    _, runtime = make_runtime()
    actor = runtime.gate.build_actor(user_id, group_id)
    decision = asyncio.run(runtime.manager.explain(actor, target))
    allowed = decision.allows(parsed_action)
    verdict = "[green]allowed[/green]" if allowed else "[red]denied[/red]"
    console.print(f"{parsed_action} on {target.scope}: {verdict}")
    if decision.rule is None:
        console.print("[dim]no matching rule (deny by default)[/dim]")
    else:
        console.print(
            f"[dim]{decision.source} rule {decision.rule.selector.describe()} "
            f"priority={decision.rule.priority} id={decision.rule.id}[/dim]"
        )
