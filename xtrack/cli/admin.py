"""Administration commands for X-Track CLI.

User management and a read-only view over every account. All commands
require a session with the admin role.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from xtrack.cli.common import console, format_money, format_pl, get_config, mask_token, open_admin, run
from xtrack.cli.stats import build_chart, build_history_table
from xtrack.models import Account, ApiResponse, User


def build_users_table(users: tuple[User, ...]) -> Table:
    table = Table(title=f"Users ({len(users)})", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Username", style="cyan")
    table.add_column("Role")
    table.add_column("Created")

    for user in users:
        role = "[magenta]admin[/magenta]" if user.role == "admin" else "user"
        table.add_row(
            str(user.id),
            user.username,
            role,
            user.created_at.strftime("%Y-%m-%d") if user.created_at else "-",
        )

    return table


def build_all_accounts_table(accounts: tuple[Account, ...]) -> Table:
    table = Table(title=f"All Accounts ({len(accounts)})", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Owner")
    table.add_column("API Token")

    for account in accounts:
        owner = account.user.username if account.user else f"user {account.user_id}"
        table.add_row(str(account.id), account.name, owner, mask_token(account.api_token))

    return table


def _fail(response: ApiResponse) -> None:
    console.print(Panel(
        f"[red]{response.error or 'Operation failed'}[/red]",
        title="Error",
        border_style="red",
    ))
    raise SystemExit(1)


@click.command()
def users() -> None:
    """List all users (admin)."""
    config = get_config()

    async def _load():
        async with open_admin(config) as admin:
            response = await admin.load_users()
            return response, admin.state

    response, state = run(_load())
    if not response.success:
        _fail(response)
    console.print(build_users_table(state.users))


@click.command("user-add")
@click.argument("username")
@click.option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--role", type=click.Choice(["user", "admin"]), default="user")
def user_add(username: str, password: str, role: str) -> None:
    """Create a user (admin)."""
    config = get_config()

    async def _create():
        async with open_admin(config) as admin:
            return await admin.create_user(username, password, role)

    response = run(_create())
    if not response.success:
        _fail(response)
    console.print(f"[green]✓ Created {role} {username}[/green]")


@click.command("user-edit")
@click.argument("user_id", type=int)
@click.option("--username", default=None, help="New username.")
@click.option("--password", default=None, help="New password (leave out to keep).")
@click.option("--role", type=click.Choice(["user", "admin"]), default=None)
def user_edit(user_id: int, username: Optional[str], password: Optional[str], role: Optional[str]) -> None:
    """Update a user (admin)."""
    config = get_config()

    async def _update():
        async with open_admin(config) as admin:
            return await admin.update_user(user_id, username=username, password=password, role=role)

    response = run(_update())
    if not response.success:
        _fail(response)
    console.print(f"[green]✓ Updated user {user_id}[/green]")


@click.command("user-rm")
@click.argument("user_id", type=int)
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation.")
def user_rm(user_id: int, yes: bool) -> None:
    """Delete a user and their accounts (admin)."""
    if not yes and not click.confirm(
        f"Are you sure you want to delete user {user_id}? This action cannot be undone."
    ):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    config = get_config()

    async def _delete():
        async with open_admin(config) as admin:
            return await admin.delete_user(user_id)

    response = run(_delete())
    if not response.success:
        _fail(response)
    console.print(f"[green]✓ Deleted user {user_id}[/green]")


@click.command("all-accounts")
def all_accounts() -> None:
    """List every account on the platform (admin)."""
    config = get_config()

    async def _load():
        async with open_admin(config) as admin:
            response = await admin.load_accounts()
            return response, admin.state

    response, state = run(_load())
    if not response.success:
        _fail(response)
    console.print(build_all_accounts_table(state.accounts))


@click.command()
@click.argument("account_id", type=int)
def inspect(account_id: int) -> None:
    """Show analytics of any account (admin)."""
    config = get_config()

    async def _inspect():
        async with open_admin(config) as admin:
            response = await admin.load_accounts()
            if not response.success:
                return response, None, None, [], [], 0.0
            account = next((a for a in admin.state.accounts if a.id == account_id), None)
            if account is not None:
                admin.view_stats(account)
                await admin.wait()
            return (
                response, account, admin.analytics,
                admin.chart_series, admin.table_rows, admin.net_profit,
            )

    with console.status("[bold blue]Loading statistics...[/bold blue]"):
        response, account, analytics, points, rows, net = run(_inspect())

    if not response.success:
        _fail(response)
    if account is None:
        console.print(f"[red]Account {account_id} not found.[/red]")
        raise SystemExit(1)

    owner = account.user.username if account.user else f"user {account.user_id}"
    overall = analytics.overall_summary
    today = analytics.today_summary
    console.print(Panel(
        f"Owner: [cyan]{owner}[/cyan]\n"
        f"Balance: {format_money(overall.current_balance if overall else None)}\n"
        f"Today: {format_pl(today.daily_pl if today else None)}\n"
        f"Net profit (loaded): {format_pl(net)}",
        title=f"Analytics: {account.name}",
        border_style="magenta",
    ))

    chart = build_chart(points)
    if chart is not None:
        console.print(chart)
    if rows:
        console.print(build_history_table(rows))
