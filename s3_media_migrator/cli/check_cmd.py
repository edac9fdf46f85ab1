"""CLI command handler for pre-run checks."""

from __future__ import annotations

import sys

import click

from s3_media_migrator.cli.common import (
    build_context,
    cli,
    common_options,
    handle_exception,
)
from s3_media_migrator.core.migrator import MediaMigrator
from s3_media_migrator.utils.logging import setup_logger


@cli.command()
@common_options
def check(config: str, verbose: bool, debug_sql: bool) -> None:
    """Check the database, the offload plugin and the storage settings.

    Nothing is written. Exits non-zero if the migration could not run.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        debug_sql: Log every SQL statement.
    """
    setup_logger(verbose, debug_sql)

    try:
        ctx = build_context(config, verbose, debug_sql)
        migrator = MediaMigrator(ctx)
        migrator.check()
        settings = migrator.resolve_settings()
        site_ids = migrator.site_ids()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)

    click.echo(f"Bucket: {settings.bucket} ({settings.region})")
    click.echo(f"Media URL host: {settings.bucket_url()}")
    click.echo(f"Multisite: {'yes' if migrator.multisite else 'no'}")
    click.echo(f"Sites: {', '.join(str(site_id) for site_id in site_ids)}")
    click.echo("All checks passed.")
