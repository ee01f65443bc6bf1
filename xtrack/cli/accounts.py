"""Portfolio management commands for X-Track CLI.

Lists the signed-in user's accounts and creates, renames, deletes
them or rotates their ingestion tokens.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from xtrack.cli.common import console, get_config, mask_token, open_dashboard, run
from xtrack.models import Account, ApiResponse


def build_accounts_table(
    accounts: tuple[Account, ...],
    selected_id: Optional[int] = None,
    show_tokens: bool = False,
) -> Table:
    """Build the portfolio listing table."""
    table = Table(title=f"Your Portfolios ({len(accounts)})", show_header=True, header_style="bold")
    table.add_column("", width=1)
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("API Token")
    table.add_column("Created")

    for account in accounts:
        table.add_row(
            "▶" if account.id == selected_id else "",
            str(account.id),
            account.name,
            account.api_token if show_tokens else mask_token(account.api_token),
            account.created_at.strftime("%Y-%m-%d") if account.created_at else "-",
        )

    return table


def _report_failure(action: str, response: ApiResponse) -> None:
    console.print(Panel(
        f"[red]{action} failed:[/red] {response.error or 'Operation failed'}",
        title="Error",
        border_style="red",
    ))
    raise SystemExit(1)


@click.command()
@click.option("--show-tokens", is_flag=True, default=False, help="Reveal full API tokens.")
def accounts(show_tokens: bool) -> None:
    """List your portfolios.

    \b
    Examples:
      xtrack accounts
      xtrack accounts --show-tokens
    """
    config = get_config()

    async def _load():
        async with open_dashboard(config) as dashboard:
            response = await dashboard.load_accounts(auto_select=False)
            return response, dashboard.state

    with console.status("[bold blue]Loading portfolios...[/bold blue]"):
        response, state = run(_load())

    if not response.success:
        _report_failure("Loading portfolios", response)

    if not state.accounts:
        console.print("[yellow]No portfolios yet.[/yellow] Create one with [cyan]xtrack create NAME[/cyan].")
        return

    console.print(build_accounts_table(
        state.accounts, state.selection.selected_account_id, show_tokens,
    ))


@click.command()
@click.argument("name")
def create(name: str) -> None:
    """Create a new portfolio.

    \b
    Examples:
      xtrack create "Swing Account"
    """
    config = get_config()

    async def _create():
        async with open_dashboard(config) as dashboard:
            await dashboard.load_accounts(auto_select=False)
            return await dashboard.create_account(name)

    response = run(_create())
    if not response.success or response.data is None:
        _report_failure("Create", response)

    account = response.data
    console.print(Panel(
        f"[green]✓ Created portfolio {account.name}[/green] (id {account.id})\n\n"
        f"API token:\n[cyan]{account.api_token}[/cyan]\n\n"
        "[dim]Use this token to post statistics from your trading bot.[/dim]",
        title="Portfolio Created",
        border_style="green",
    ))


@click.command()
@click.argument("account_id", type=int)
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation.")
def delete(account_id: int, yes: bool) -> None:
    """Delete a portfolio and all of its statistics.

    \b
    Examples:
      xtrack delete 3
    """
    if not yes and not click.confirm(
        f"Are you sure you want to delete account {account_id}? This cannot be undone."
    ):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    config = get_config()

    async def _delete():
        async with open_dashboard(config) as dashboard:
            await dashboard.load_accounts()
            response = await dashboard.delete_account(account_id)
            return response, dashboard.selected_account

    response, selected = run(_delete())
    if not response.success:
        _report_failure("Delete", response)

    console.print(f"[green]✓ Deleted account {account_id}[/green]")
    if selected is not None:
        console.print(f"Now viewing [cyan]{selected.name}[/cyan]")


@click.command()
@click.argument("account_id", type=int)
def rotate(account_id: int) -> None:
    """Regenerate a portfolio's API token.

    The old token stops working immediately.
    """
    config = get_config()

    async def _rotate():
        async with open_dashboard(config) as dashboard:
            await dashboard.load_accounts(auto_select=False)
            return await dashboard.rotate_token(account_id)

    response = run(_rotate())
    if not response.success or response.data is None:
        _report_failure("Token rotation", response)

    console.print(Panel(
        f"New API token for [cyan]{response.data.name}[/cyan]:\n\n{response.data.api_token}",
        title="Token Regenerated",
        border_style="green",
    ))


@click.command()
@click.argument("account_id", type=int)
@click.argument("name")
def rename(account_id: int, name: str) -> None:
    """Rename a portfolio."""
    config = get_config()

    async def _rename():
        async with open_dashboard(config) as dashboard:
            await dashboard.load_accounts(auto_select=False)
            return await dashboard.rename_account(account_id, name)

    response = run(_rename())
    if not response.success or response.data is None:
        _report_failure("Rename", response)

    console.print(f"[green]✓ Account {account_id} renamed to {response.data.name}[/green]")
