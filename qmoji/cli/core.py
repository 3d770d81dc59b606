"""Shared CLI application context and setup helpers."""

from __future__ import annotations

import typer
from rich.console import Console

from qmoji import __logo__, __version__

app = typer.Typer(
    name="qmoji",
    help=f"{__logo__} qmoji - named emoji for chat groups",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} qmoji v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
    """qmoji - named emoji for chat groups."""


def make_runtime():
    """Create the policy runtime from ~/.qmoji/config.json."""
    from qmoji.app.bootstrap import build_policy_runtime
    from qmoji.config.loader import load_config

    config = load_config()
    return config, build_policy_runtime(config)


@app.command()
def onboard(
    admins: list[int] | None = typer.Option(None, "--admin", "-a", help="Bot administrator user id (repeatable)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config without asking"),
) -> None:
    """Initialize qmoji configuration, policy and allowlist files."""
    from qmoji.config.loader import get_config_path, save_config
    from qmoji.config.schema import Config
    from qmoji.policy.loader import ensure_policy_file
    from qmoji.storage.allowlist import AllowlistStore

    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config(admins=admins or [])
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")
    policy_path = ensure_policy_file(config.policy.policy_path)
    console.print(f"[green]✓[/green] Created policy at {policy_path}")
    allowlist = AllowlistStore(config.allowlist_file, seed_users=config.admins)
    console.print(f"[green]✓[/green] Allowlist at {allowlist.path} ({len(allowlist.users)} user(s))")

    console.print(f"\n{__logo__} qmoji is ready!")
    console.print("\nNext steps:")
    console.print("  1. Point [cyan]napcat.wsUrl[/cyan] in ~/.qmoji/config.json at your NapCat gateway")
    console.print('  2. In a group chat: [cyan]perm enable[/cyan]')
