"""Authentication commands for X-Track CLI.

Handles sign-in and sign-out against the X-Track API and keeps the
session in the local session store.
"""

import click
from rich.panel import Panel

from xtrack.cli.common import (
    console,
    get_config,
    get_service,
    get_session_store,
    is_demo,
    run,
)


@click.command()
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing config file.")
def init(force: bool) -> None:
    """Create a template configuration file.

    \b
    Examples:
      xtrack init
      xtrack init --force
    """
    from xtrack.config import CONFIG_PATH, create_template_config

    if CONFIG_PATH.exists() and not force:
        console.print(f"[yellow]Config already exists at {CONFIG_PATH}[/yellow]")
        console.print("Use [cyan]--force[/cyan] to overwrite it.")
        return

    path = create_template_config()
    console.print(Panel(
        f"[green]Configuration written to:[/green]\n{path}\n\n"
        "Set [cyan]api.mode = \"demo\"[/cyan] to try X-Track without a server.",
        title="X-Track Setup",
        border_style="green",
    ))


@click.command()
@click.option("--username", "-u", prompt=True, help="Username.")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Password.")
def login(username: str, password: str) -> None:
    """Sign in and remember the session.

    \b
    Examples:
      xtrack login
      xtrack login -u alice
    """
    from xtrack.controller.auth import AuthManager

    config = get_config()
    if is_demo(config):
        console.print("[yellow]Demo mode signs in automatically; nothing to do.[/yellow]")
        return

    async def _login():
        service = get_service(config)
        try:
            return await AuthManager(service, get_session_store()).login(username, password)
        finally:
            await service.aclose()

    with console.status("[bold blue]Signing in...[/bold blue]"):
        response = run(_login())

    if not response.success or response.data is None:
        console.print(Panel(
            f"[red]Login failed:[/red] {response.error or 'Login failed'}",
            title="Authentication Error",
            border_style="red",
        ))
        raise SystemExit(1)

    user = response.data.user
    console.print(Panel(
        f"[green]✓ Signed in as {user.username}[/green]\n"
        f"Role: [cyan]{user.role}[/cyan]",
        title="Login Successful",
        border_style="green",
    ))


@click.command()
def logout() -> None:
    """Sign out and forget the stored session."""
    store = get_session_store()
    session = store.get_session()
    if session is None:
        console.print("[yellow]No active session.[/yellow]")
        return

    store.clear_session()
    console.print("[green]✓ Signed out[/green]")


@click.command()
def whoami() -> None:
    """Show the signed-in user."""
    session = get_session_store().get_session()
    if session is None:
        console.print("[yellow]Not logged in.[/yellow]")
        return

    console.print(Panel(
        f"User: [cyan]{session.user.username}[/cyan] (id {session.user_id})\n"
        f"Role: [cyan]{session.role}[/cyan]",
        title="Current Session",
        border_style="blue",
    ))
