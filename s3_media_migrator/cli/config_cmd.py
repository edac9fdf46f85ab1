"""CLI command handler for writing a starter config file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from s3_media_migrator.cli.common import cli
from s3_media_migrator.core.config import create_default_config


@cli.command("init-config")
@click.option(
    "--path",
    default="config.yaml",
    show_default=True,
    help="Where to write the config file",
)
def init_config(path: str) -> None:
    """Write a default config.yaml to edit before the first run.

    Args:
        path: Target path; an existing file is never overwritten.
    """
    if not create_default_config(Path(path)):
        sys.exit(1)
    click.echo(f"Default configuration written to {path}")
