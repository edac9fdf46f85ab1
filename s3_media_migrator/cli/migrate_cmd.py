"""CLI command handler for the migrate workflow."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from s3_media_migrator.cli.common import (
    build_context,
    cli,
    common_options,
    handle_exception,
    protocol_option,
)
from s3_media_migrator.cli.report import (
    create_migration_output_directory,
    generate_report,
    print_purge_summary,
    print_results_table,
    print_summary,
)
from s3_media_migrator.core.migrator import MediaMigrator
from s3_media_migrator.utils.logging import log_with_context, setup_logger

# ---------------------------------------------------------------------------
# migrate subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@protocol_option
@click.option(
    "--output",
    is_flag=True,
    default=False,
    help="Print a per-item result table after the run",
)
@click.option(
    "--purge",
    is_flag=True,
    default=False,
    help="Delete every migration record instead of migrating",
)
@click.option(
    "--skip-content-rewrite",
    "skip_content_rewrite",
    is_flag=True,
    default=False,
    help="Do not rewrite media URLs in post content",
)
@click.option(
    "--skip-precheck",
    "skip_precheck",
    is_flag=True,
    default=False,
    help="Skip database and plugin checks (not recommended)",
)
def migrate(
    config: str,
    verbose: bool,
    debug_sql: bool,
    protocol: str,
    output: bool,
    purge: bool,
    skip_content_rewrite: bool,
    skip_precheck: bool,
) -> None:
    """Record every unmigrated media item in the offload item store.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        debug_sql: Log every SQL statement.
        protocol: Protocol of rewritten media URLs.
        output: Print a per-item result table.
        purge: Purge all records and exit.
        skip_content_rewrite: Leave post content untouched.
        skip_precheck: Skip pre-run checks.
    """
    # Create output directory early so all operations are logged to file
    output_dir = create_migration_output_directory()
    setup_logger(verbose, debug_sql, output_dir)

    log_startup_info(config, protocol, purge, verbose, debug_sql)
    log_with_context(logging.INFO, f"Output directory: {output_dir}")

    migrator: Optional[MediaMigrator] = None
    try:
        ctx = build_context(
            config,
            verbose,
            debug_sql,
            output_dir=output_dir,
            show_output=output,
            protocol=protocol,
            skip_precheck=skip_precheck,
            skip_content_rewrite=skip_content_rewrite,
        )
        migrator = MediaMigrator(ctx)

        if purge:
            migrator.purge()
            print_purge_summary(migrator.state)
            return

        state = migrator.migrate()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        if migrator is not None and migrator.state.migration_summary["items_found"]:
            report_file = generate_report(migrator.ctx, migrator.state)
            log_with_context(
                logging.INFO,
                f"Migration report (with partial results) available at: {report_file}",
            )
        sys.exit(1)

    report_file = generate_report(migrator.ctx, state)
    print_summary(state, report_file)
    if output:
        print_results_table(state)

    if state.has_errors:
        log_with_context(
            logging.WARNING,
            f"{len(state.failed_items)} items failed to migrate, see the site logs",
        )
        sys.exit(1)

    log_with_context(logging.INFO, "Migration completed successfully!")


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def log_startup_info(
    config: str, protocol: str, purge: bool, verbose: bool, debug_sql: bool
) -> None:
    """Log startup information.

    Args:
        config: Path to the config YAML.
        protocol: Protocol of rewritten URLs.
        purge: Whether the run purges instead of migrating.
        verbose: Verbose console logging.
        debug_sql: SQL statement logging.
    """
    config_path = Path(config)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config

    log_with_context(logging.INFO, "Starting migration with the following parameters:")
    log_with_context(logging.INFO, f"- Config: {config_path}")
    log_with_context(logging.INFO, f"- Protocol: {protocol}")
    log_with_context(logging.INFO, f"- Purge: {purge}")
    log_with_context(logging.INFO, f"- Verbose logging: {verbose}")
    log_with_context(logging.INFO, f"- Debug SQL: {debug_sql}")
