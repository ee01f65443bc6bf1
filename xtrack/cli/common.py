"""Shared helpers for X-Track CLI commands."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

from rich.console import Console
from rich.panel import Panel

from xtrack.config import SESSION_DB_PATH, load_config, validate_config
from xtrack.controller.admin import AdminController
from xtrack.controller.dashboard import DashboardController
from xtrack.db.store import SessionStore
from xtrack.models import Session
from xtrack.services.base import BaseService

console = Console()

DEMO_CREDENTIALS = {
    "user": ("demo", "demo123"),
    "admin": ("admin", "admin123"),
}

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def get_config() -> dict:
    """Load configuration, exiting with a message if it is invalid."""
    config = load_config()
    problems = validate_config(config)
    if problems:
        console.print(Panel(
            "[red]Invalid configuration:[/red]\n\n"
            + "\n".join(f"  • {p}" for p in problems),
            title="Configuration Error",
            border_style="red",
        ))
        raise SystemExit(1)
    return config


def is_demo(config: dict) -> bool:
    return config.get("api", {}).get("mode") == "demo"


def get_session_store() -> SessionStore:
    """Get the session store instance."""
    return SessionStore(SESSION_DB_PATH)


def get_service(config: dict) -> BaseService:
    """Get the data service selected by the config."""
    if is_demo(config):
        from xtrack.services.memory import build_demo_service

        return build_demo_service()

    from xtrack.services.http import HttpService

    api = config.get("api", {})
    return HttpService(base_url=api["base_url"], timeout=api["timeout"])


async def open_session(
    config: dict, role: str = "user"
) -> tuple[BaseService, Optional[Session]]:
    """Create the service and find the session to use with it.

    In demo mode the bundled demo user (or admin) is signed in for the
    lifetime of the command; otherwise the persisted session is used.
    """
    service = get_service(config)
    if is_demo(config):
        username, password = DEMO_CREDENTIALS[role]
        response = await service.login(username, password)
        return service, response.data
    return service, get_session_store().get_session()


def require_session(session: Optional[Session], admin: bool = False) -> Session:
    """Exit with a message unless a suitable session exists."""
    if session is None:
        console.print(Panel(
            "[red]Not logged in.[/red]\n\nRun [cyan]xtrack login[/cyan] first.",
            title="Authentication Required",
            border_style="red",
        ))
        raise SystemExit(1)
    if admin and not session.is_admin:
        console.print("[red]This command requires an administrator account.[/red]")
        raise SystemExit(1)
    return session


def run(coro: Any) -> Any:
    """Run a coroutine to completion from a synchronous command."""
    return asyncio.run(coro)


def format_pl(value: Optional[float]) -> str:
    """Format a P/L value with an explicit sign and color markup."""
    if value is None:
        return "[dim]-[/dim]"
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}{value:,.2f}[/{color}]"


def format_money(value: Optional[float]) -> str:
    if value is None:
        return "[dim]-[/dim]"
    return f"${value:,.2f}"


def mask_token(token: str, visible: int = 6) -> str:
    """Hide all but the first characters of an API token."""
    if len(token) <= visible:
        return "•" * len(token)
    return token[:visible] + "•" * 10


def sparkline(values: Sequence[float]) -> str:
    """Render values as a one-line bar chart, oldest first."""
    if not values:
        return ""
    low, high = min(values), max(values)
    if high == low:
        return SPARK_CHARS[len(SPARK_CHARS) // 2] * len(values)
    scale = (len(SPARK_CHARS) - 1) / (high - low)
    return "".join(SPARK_CHARS[round((v - low) * scale)] for v in values)


@asynccontextmanager
async def open_dashboard(
    config: dict, default_filter: Optional[str] = None
) -> AsyncIterator[DashboardController]:
    """Yield a dashboard controller for the current session."""
    service, session = await open_session(config)
    try:
        session = require_session(session)
        dashboard = config.get("dashboard", {})
        controller = DashboardController(
            service,
            session,
            page_size=dashboard.get("page_size", 100),
            table_limit=dashboard.get("table_limit", 10),
            default_filter=default_filter or dashboard.get("default_filter", "all"),
        )
        try:
            yield controller
        finally:
            await controller.close()
    finally:
        await service.aclose()


@asynccontextmanager
async def open_admin(config: dict) -> AsyncIterator[AdminController]:
    """Yield an admin controller for the current (admin) session."""
    service, session = await open_session(config, role="admin")
    try:
        controller = AdminController(service, require_session(session, admin=True))
        try:
            yield controller
        finally:
            await controller.close()
    finally:
        await service.aclose()
