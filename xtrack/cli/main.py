"""Main CLI entry point for X-Track.

This module provides the main click group and lazy loading
of command modules to keep startup fast.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when they are actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        # Commands are either attributes named after the command or
        # functions whose click name differs from the attribute name
        cmd = getattr(module, cmd_name, None)
        if not isinstance(cmd, click.Command):
            cmd = None
            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if isinstance(attr, click.Command) and attr.name == cmd_name:
                    cmd = attr
                    break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    "init": "xtrack.cli.auth",
    "login": "xtrack.cli.auth",
    "logout": "xtrack.cli.auth",
    "whoami": "xtrack.cli.auth",
    # Portfolios
    "accounts": "xtrack.cli.accounts",
    "create": "xtrack.cli.accounts",
    "delete": "xtrack.cli.accounts",
    "rotate": "xtrack.cli.accounts",
    "rename": "xtrack.cli.accounts",
    # Analytics
    "stats": "xtrack.cli.stats",
    # Administration
    "users": "xtrack.cli.admin",
    "user-add": "xtrack.cli.admin",
    "user-edit": "xtrack.cli.admin",
    "user-rm": "xtrack.cli.admin",
    "all-accounts": "xtrack.cli.admin",
    "inspect": "xtrack.cli.admin",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="xtrack")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """X-Track - monitor your trading accounts from the terminal.

    \b
    Quick Start:
      xtrack login             # Sign in
      xtrack accounts          # List your portfolios
      xtrack stats --filter 7d # Last 7 days of the first portfolio
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
