"""CLI commands for X-Track.

This package provides the command-line interface for X-Track,
including authentication, portfolio management and analytics commands.
"""

from xtrack.cli.main import cli, main

__all__ = ["cli", "main"]
