"""Analytics commands for X-Track CLI.

Shows today's snapshot, the all-time summary and the P/L history of a
portfolio over a selectable window.
"""

from typing import Optional

import click
from rich.columns import Columns
from rich.panel import Panel
from rich.table import Table

from xtrack.analytics.summary import ChartPoint, WindowSummary
from xtrack.analytics.window import FILTER_RANGES
from xtrack.cli.common import (
    console,
    format_money,
    format_pl,
    get_config,
    open_dashboard,
    run,
    sparkline,
)
from xtrack.controller.state import OVERALL, RECORDS, TODAY, DashboardState
from xtrack.models import StatisticRecord

FILTER_LABELS = {
    "all": "Recent history",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
}


def build_summary_panels(state: DashboardState, window: WindowSummary, filter_range: str) -> Columns:
    """Build the headline cards for the selected account."""
    overall = state.overall_summary
    today = state.today_summary

    if state.errors.get(OVERALL):
        balance_body = f"[red]{state.errors[OVERALL]}[/red]"
    elif overall is None or not overall.has_data:
        balance_body = "[dim]No data yet[/dim]"
    else:
        balance_body = (
            f"[bold]{format_money(overall.current_balance)}[/bold]\n"
            f"Latest P/L: {format_pl(overall.latest_pl)}"
        )

    if state.errors.get(TODAY):
        today_body = f"[red]{state.errors[TODAY]}[/red]"
    elif today is None or today.total_records == 0:
        today_body = "[dim]No updates today[/dim]"
    else:
        today_body = (
            f"P/L: {format_pl(today.daily_pl)}\n"
            f"Trades: [bold]{today.trades_today}[/bold]"
        )

    window_body = (
        f"Net profit: {format_pl(window.net_profit)}\n"
        f"Records: {window.record_count}  "
        f"[green]▲{window.winning_days}[/green] [red]▼{window.losing_days}[/red]"
    )

    return Columns([
        Panel(balance_body, title="Balance", border_style="blue", width=30),
        Panel(today_body, title="Today", border_style="cyan", width=30),
        Panel(window_body, title=FILTER_LABELS.get(filter_range, filter_range), border_style="magenta", width=34),
    ])


def build_history_table(rows: list[StatisticRecord]) -> Table:
    """Build the history table, newest first."""
    table = Table(title="History", show_header=True, header_style="bold")
    table.add_column("Timestamp")
    table.add_column("Daily P/L", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("Balance", justify="right")

    for row in rows:
        table.add_row(
            row.timestamp.strftime("%Y-%m-%d %H:%M"),
            format_pl(row.daily_pl),
            str(row.trades_today),
            format_money(row.total_balance),
        )

    return table


def build_chart(points: list[ChartPoint]) -> Optional[Panel]:
    """Render the balance and P/L series as sparklines."""
    if not points:
        return None
    first, last = points[0], points[-1]
    return Panel(
        f"Balance  {sparkline([p.balance for p in points])}\n"
        f"P/L      {sparkline([p.pl for p in points])}\n"
        f"[dim]{first.label} {first.time} → {last.label} {last.time}[/dim]",
        title="Performance",
        border_style="green",
    )


@click.command()
@click.option("--account", "-a", "account_id", type=int, default=None,
              help="Account ID (defaults to your first portfolio).")
@click.option("--filter", "-f", "filter_range", type=click.Choice(list(FILTER_RANGES)),
              default=None, help="Time window.")
@click.option("--limit", "-n", type=int, default=None, help="Rows in the history table.")
def stats(account_id: Optional[int], filter_range: Optional[str], limit: Optional[int]) -> None:
    """Show performance of a portfolio.

    \b
    Examples:
      xtrack stats
      xtrack stats --filter 7d
      xtrack stats -a 2 -f 30d -n 20
    """
    config = get_config()

    async def _load():
        async with open_dashboard(config, default_filter=filter_range) as dashboard:
            if limit is not None:
                dashboard.table_limit = limit
            response = await dashboard.load_accounts()
            if response.success and account_id is not None:
                dashboard.select_account(account_id)
            await dashboard.wait()
            return (
                response,
                dashboard.state,
                dashboard.summary,
                dashboard.chart_series,
                dashboard.table_rows,
            )

    with console.status("[bold blue]Loading statistics...[/bold blue]"):
        response, state, window, points, rows = run(_load())

    if not response.success:
        console.print(f"[red]Failed to load portfolios: {response.error}[/red]")
        raise SystemExit(1)

    account = state.selected_account
    if account is None and account_id is not None:
        console.print(f"[red]Account {account_id} not found among your portfolios.[/red]")
        raise SystemExit(1)
    if account is None:
        console.print("[yellow]No portfolio selected.[/yellow] Create one with [cyan]xtrack create NAME[/cyan].")
        return

    console.print(f"\n[bold]{account.name}[/bold] [dim](id {account.id})[/dim]\n")
    console.print(build_summary_panels(state, window, state.selection.filter_range))

    chart = build_chart(points)
    if chart is not None:
        console.print(chart)

    if state.errors.get(RECORDS):
        console.print(f"[red]History unavailable: {state.errors[RECORDS]}[/red]")
    elif rows:
        console.print(build_history_table(rows))
    else:
        console.print("[dim]No records in this window.[/dim]")
