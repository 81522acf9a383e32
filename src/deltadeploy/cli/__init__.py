"""Command-line interface for deltadeploy.

This module provides the main CLI entry point and assembles all commands.

Commands:
- deploy: Deploy a site to its configured target
- plan: Show the operations a deployment would perform
- test-connection: Check that a site's deployment target is reachable
"""

from __future__ import annotations

import click

from deltadeploy.cli.connection import connection_check
from deltadeploy.cli.deploy import deploy, plan


@click.group()
@click.version_option()
def cli() -> None:
    """deltadeploy - Differential static site deployment."""


# Deployment commands
cli.add_command(deploy)
cli.add_command(plan)

# Connection commands
cli.add_command(connection_check)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
]
