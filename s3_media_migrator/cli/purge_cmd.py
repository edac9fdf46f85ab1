"""CLI command handler for purging migration records."""

from __future__ import annotations

import logging
import sys

import click

from s3_media_migrator.cli.common import (
    build_context,
    cli,
    common_options,
    handle_exception,
)
from s3_media_migrator.cli.report import print_purge_summary
from s3_media_migrator.core.migrator import MediaMigrator
from s3_media_migrator.utils.logging import log_with_context, setup_logger


@cli.command()
@common_options
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    default=False,
    help="Do not ask for confirmation",
)
def purge(config: str, verbose: bool, debug_sql: bool, yes: bool) -> None:
    """Delete every migration record of every site.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        debug_sql: Log every SQL statement.
        yes: Skip the confirmation prompt.
    """
    setup_logger(verbose, debug_sql)

    if not yes and not click.confirm(
        "This deletes all migration records. Continue?", default=False
    ):
        log_with_context(logging.INFO, "Purge cancelled by user.")
        return

    try:
        ctx = build_context(config, verbose, debug_sql)
        migrator = MediaMigrator(ctx)
        migrator.purge()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)

    print_purge_summary(migrator.state)
