"""Deployment commands for deltadeploy CLI.

Commands:
- deploy: Deploy a site to its configured target
- plan: Show the operations a deployment would perform
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from deltadeploy.cli.logging_setup import setup_logging
from deltadeploy.core.config import ConfigError, SiteConfig, load_site_config
from deltadeploy.deploy import DeployCoordinator, DeployError, DeployProgress


def _load_config(config_path: Path) -> SiteConfig:
    try:
        return load_site_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def format_progress(progress: DeployProgress) -> str:
    """Render a progress message as one status line."""
    line = f"[{progress.progress:3d}%]"
    if progress.operations:
        completed, total = progress.operations
        line += f" {completed}/{total} operations"
    return line


def _print_progress(progress: DeployProgress) -> None:
    click.echo(format_progress(progress))


config_argument = click.argument(
    "config_path",
    metavar="CONFIG",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


@click.command()
@config_argument
@click.option("--dry-run", is_flag=True, help="Compute the operations without deploying.")
@click.option("--verbose", "-v", is_flag=True, help="Log every operation.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the log to this file.",
)
def deploy(config_path: Path, dry_run: bool, verbose: bool, log_file: Path | None) -> None:
    """Deploy a site to its configured target.

    Only the files that changed since the last deployment are transferred.

    Examples:

        # Deploy the site described by site.json
        deltadeploy deploy site.json

        # See what would change, with per-file logging
        deltadeploy deploy site.json --dry-run --verbose
    """
    setup_logging(logging.DEBUG if verbose else logging.INFO, log_file)
    config = _load_config(config_path)

    coordinator = DeployCoordinator(config, progress_callback=_print_progress)
    try:
        result = coordinator.run(dry_run=dry_run)
    except KeyboardInterrupt:
        click.echo("Error: Deployment interrupted.", err=True)
        sys.exit(1)
    except DeployError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.dry_run:
        click.echo(
            f"Dry run: {len(result.removed)} to remove, {len(result.uploaded)} to upload."
        )
    elif result.changed:
        click.echo(
            f"Deployed revision {result.revision}: "
            f"{len(result.removed)} removed, {len(result.uploaded)} uploaded."
        )
    else:
        click.echo(f"Deployed revision {result.revision}: already up to date.")


@click.command()
@config_argument
def plan(config_path: Path) -> None:
    """Show the operations a deployment would perform.

    Removals and uploads are listed in execution order. The remote side is
    not modified.
    """
    setup_logging(logging.WARNING)
    config = _load_config(config_path)

    try:
        result = DeployCoordinator(config).plan()
    except DeployError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.changed:
        click.echo("Nothing to deploy.")
        return

    for path in result.removed:
        click.echo(f"- {path}")
    for path in result.uploaded:
        click.echo(f"+ {path}")
    click.echo(f"{len(result.removed)} to remove, {len(result.uploaded)} to upload.")
