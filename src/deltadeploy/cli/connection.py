"""Connection commands for deltadeploy CLI.

Commands:
- test-connection: Check that a site's deployment target is reachable
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from deltadeploy.cli.logging_setup import setup_logging
from deltadeploy.core.config import ConfigError, load_site_config
from deltadeploy.deploy.types import DeployError
from deltadeploy.transports import check_connection


@click.command("test-connection")
@click.argument(
    "config_path",
    metavar="CONFIG",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def connection_check(config_path: Path) -> None:
    """Check that a site's deployment target is reachable."""
    setup_logging(logging.WARNING)
    try:
        config = load_site_config(config_path)
        location = check_connection(config.deployment)
    except (ConfigError, DeployError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Connection OK: {location}")
