"""
Report generation functionality for the S3 media migration
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import Any, Optional

import click
import yaml

from s3_media_migrator.core.context import MigrationContext
from s3_media_migrator.core.state import MigrationState
from s3_media_migrator.utils.logging import log_with_context


def print_summary(state: MigrationState, report_file: Optional[str] = None) -> None:
    """Print a summary of the migration run to the console."""
    summary = state.migration_summary
    click.echo("\n" + "=" * 80)
    click.echo("MIGRATION SUMMARY")
    click.echo("=" * 80)
    click.echo(f"Sites processed: {len(summary['sites_processed'])}")
    click.echo(f"Items found: {summary['items_found']}")
    click.echo(f"Items migrated: {summary['items_migrated']}")
    click.echo(f"  of which from legacy items: {summary['items_from_legacy']}")
    click.echo(f"Items failed: {summary['items_failed']}")
    click.echo(f"Content rows rewritten: {summary['content_rows_rewritten']}")

    if state.has_errors:
        click.echo(f"\nSuccess rate: {state.success_rate:.1f}%")
        click.echo("Run with --output to see which items failed.")

    if report_file:
        click.echo(f"\nDetailed report saved to {report_file}")
    click.echo("=" * 80)


def print_results_table(state: MigrationState) -> None:
    """Print one line per reconciled item."""
    header = f"{'SITE':>6}  {'SOURCE ID':>10}  {'ITEM ID':>10}  STATUS"
    click.echo(header)
    click.echo("-" * len(header))
    for site_id, outcomes in state.outcomes_by_site.items():
        for outcome in outcomes:
            item_id = "" if outcome.item_id is None else str(outcome.item_id)
            if outcome.ok:
                status = "migrated (legacy)" if outcome.from_legacy else "migrated"
            else:
                status = f"failed: {outcome.error}"
            click.echo(
                f"{site_id:>6}  {outcome.source_id:>10}  {item_id:>10}  {status}"
            )


def print_purge_summary(state: MigrationState) -> None:
    """Print how many records were removed per site."""
    for site_id, rows in state.purged_by_site.items():
        click.echo(f"Site {site_id}: {rows} records purged")
    click.echo(f"Total: {state.migration_summary['items_purged']} records purged")


def print_rewrite_results(
    results: dict[int, dict[str, int]], preview: bool = False
) -> None:
    """Print per-site content rewrite counts."""
    for site_id, counts in results.items():
        if preview:
            click.echo(
                f"Site {site_id}: href in {counts.get('href', 0)} posts, "
                f"src in {counts.get('src', 0)} posts would be rewritten"
            )
        else:
            click.echo(f"Site {site_id}: {counts.get('rows', 0)} post rows rewritten")


def create_migration_output_directory() -> str:
    """Create output directory for migration with timestamp.

    Returns:
        The path to the newly created output directory.
    """
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = f"migration_logs/run_{timestamp}"

    os.makedirs(output_dir, exist_ok=True)
    os.makedirs(os.path.join(output_dir, "site_logs"), exist_ok=True)

    return output_dir


def generate_report(
    ctx: MigrationContext,
    state: MigrationState,
    output_file: str = "migration_report.yaml",
) -> Optional[str]:
    """
    Write a detailed migration report to the run's output directory.

    Args:
        ctx: The run's context
        state: The run's state
        output_file: File name of the report

    Returns:
        The report file path, or None when the run has no output directory
    """
    if not ctx.output_dir:
        return None

    report_path = os.path.join(ctx.output_dir, output_file)
    summary = state.migration_summary

    sites: dict[int, dict[str, Any]] = {}
    for site_id in summary["sites_processed"]:
        outcomes = state.outcomes_by_site.get(site_id, [])
        sites[site_id] = {
            "items_found": len(outcomes),
            "items_migrated": sum(1 for o in outcomes if o.ok),
            "items_failed": sum(1 for o in outcomes if not o.ok),
            "content_rows_rewritten": state.content_rows_by_site.get(site_id, 0),
            "items": [
                {
                    "source_id": o.source_id,
                    "item_id": o.item_id,
                    "from_legacy": o.from_legacy,
                    "error": o.error,
                }
                for o in outcomes
            ],
        }

    report = {
        "migration_summary": {
            "timestamp": datetime.datetime.now().isoformat(),
            "config": str(ctx.config_path),
            "item_store": ctx.config.item_store.value,
            "bucket": ctx.config.storage.bucket,
            "protocol": ctx.protocol,
            "output_path": str(ctx.output_dir),
            "sites_processed": len(summary["sites_processed"]),
            "items_found": summary["items_found"],
            "items_migrated": summary["items_migrated"],
            "items_from_legacy": summary["items_from_legacy"],
            "items_failed": summary["items_failed"],
            "items_purged": summary["items_purged"],
            "content_rows_rewritten": summary["content_rows_rewritten"],
        },
        "sites": sites,
        "failed_items": [dict(item) for item in state.failed_items],
    }

    with open(report_path, "w") as f:
        yaml.safe_dump(report, f, default_flow_style=False, sort_keys=False)

    log_with_context(logging.INFO, f"Migration report generated: {report_path}")
    return report_path
