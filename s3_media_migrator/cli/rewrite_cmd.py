"""CLI command handler for rewriting media URLs in post content."""

from __future__ import annotations

import sys

import click

from s3_media_migrator.cli.common import (
    build_context,
    cli,
    common_options,
    handle_exception,
    protocol_option,
)
from s3_media_migrator.cli.report import print_rewrite_results
from s3_media_migrator.core.migrator import MediaMigrator
from s3_media_migrator.utils.logging import setup_logger


@cli.command("rewrite-content")
@common_options
@protocol_option
@click.option(
    "--revert",
    is_flag=True,
    default=False,
    help="Rewrite remote media URLs back to local ones",
)
@click.option(
    "--preview",
    is_flag=True,
    default=False,
    help="Only report prefixes and matching post counts, change nothing",
)
def rewrite_content(
    config: str,
    verbose: bool,
    debug_sql: bool,
    protocol: str,
    revert: bool,
    preview: bool,
) -> None:
    """Rewrite href/src media URLs in post content of every site.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        debug_sql: Log every SQL statement.
        protocol: Protocol of the remote URLs.
        revert: Rewrite remote URLs back to local ones.
        preview: Count matches without writing.
    """
    setup_logger(verbose, debug_sql)

    try:
        ctx = build_context(config, verbose, debug_sql, protocol=protocol)
        migrator = MediaMigrator(ctx)
        results = migrator.rewrite_content(revert=revert, preview=preview)
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)

    print_rewrite_results(results, preview=preview)
