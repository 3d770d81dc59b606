"""Allowlist CLI commands."""

from __future__ import annotations

import typer

from .core import app, console

allowlist_app = typer.Typer(help="Manage who may use the bot")
app.add_typer(allowlist_app, name="allowlist")


def _store():
    from qmoji.config.loader import load_config
    from qmoji.storage.allowlist import AllowlistStore

    config = load_config()
    return AllowlistStore(config.allowlist_file, seed_users=config.admins)


@allowlist_app.command("show")
def allowlist_show() -> None:
    """Show allowed users and groups."""
    store = _store()
    console.print("[bold]Users[/bold]")
    for user_id in store.users or ["none"]:
        console.print(f"  - {user_id}")
    console.print("[bold]Groups[/bold]")
    for group_id in store.groups or ["none"]:
        console.print(f"  - {group_id}")


@allowlist_app.command("add-user")
def allowlist_add_user(user_id: int = typer.Argument(..., help="User id")) -> None:
    """Allow one user everywhere."""
    if _store().add_user(user_id):
        console.print(f"[green]✓[/green] Added user {user_id}")
    else:
        console.print(f"[yellow]User {user_id} is already allowed[/yellow]")


@allowlist_app.command("remove-user")
def allowlist_remove_user(user_id: int = typer.Argument(..., help="User id")) -> None:
    """Remove one user from the allowlist."""
    if _store().remove_user(user_id):
        console.print(f"[green]✓[/green] Removed user {user_id}")
    else:
        console.print(f"[yellow]User {user_id} is not on the allowlist[/yellow]")


@allowlist_app.command("add-group")
def allowlist_add_group(group_id: int = typer.Argument(..., help="Group id")) -> None:
    """Allow every member of one group."""
    if _store().add_group(group_id):
        console.print(f"[green]✓[/green] Added group {group_id}")
    else:
        console.print(f"[yellow]Group {group_id} is already allowed[/yellow]")


@allowlist_app.command("remove-group")
def allowlist_remove_group(group_id: int = typer.Argument(..., help="Group id")) -> None:
    """Remove one group from the allowlist."""
    if _store().remove_group(group_id):
        console.print(f"[green]✓[/green] Removed group {group_id}")
    else:
        console.print(f"[yellow]Group {group_id} is not on the allowlist[/yellow]")
