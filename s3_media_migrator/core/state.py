"""
Migration state container for the S3 media migration.

Mutable tracking state for a migration run, separated from immutable
configuration (MigrationContext) for clear ownership boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from s3_media_migrator.core.records import ReconciliationOutcome
from s3_media_migrator.types import FailedItem, MigrationSummary


def _default_migration_summary() -> MigrationSummary:
    """Return a fresh MigrationSummary with zeroed counters."""
    return MigrationSummary(
        sites_processed=[],
        items_found=0,
        items_migrated=0,
        items_from_legacy=0,
        items_failed=0,
        items_purged=0,
        content_rows_rewritten=0,
    )


@dataclass
class MigrationState:
    """Holds all mutable tracking state for a migration run."""

    migration_summary: MigrationSummary = field(
        default_factory=_default_migration_summary
    )
    outcomes_by_site: dict[int, list[ReconciliationOutcome]] = field(
        default_factory=dict
    )
    failed_items: list[FailedItem] = field(default_factory=list)
    content_rows_by_site: dict[int, int] = field(default_factory=dict)
    purged_by_site: dict[int, int] = field(default_factory=dict)
    current_site: Optional[int] = None

    def reset_for_run(self) -> None:
        """Reset per-run state at the start of a new migration run."""
        self.migration_summary = _default_migration_summary()
        self.outcomes_by_site = {}
        self.failed_items = []
        self.content_rows_by_site = {}
        self.purged_by_site = {}
        self.current_site = None

    def record_site(self, site_id: int) -> None:
        if site_id not in self.migration_summary["sites_processed"]:
            self.migration_summary["sites_processed"].append(site_id)

    def record_outcomes(
        self, site_id: int, outcomes: list[ReconciliationOutcome]
    ) -> None:
        """Store a site's outcomes and fold them into the summary counters."""
        self.record_site(site_id)
        self.outcomes_by_site.setdefault(site_id, []).extend(outcomes)

        summary = self.migration_summary
        summary["items_found"] += len(outcomes)
        for outcome in outcomes:
            if outcome.ok:
                summary["items_migrated"] += 1
                if outcome.from_legacy:
                    summary["items_from_legacy"] += 1
            else:
                summary["items_failed"] += 1
                self.failed_items.append(
                    FailedItem(
                        site_id=site_id,
                        source_id=outcome.source_id,
                        error=outcome.error or "",
                    )
                )

    def record_content_rewrite(self, site_id: int, rows: int) -> None:
        self.content_rows_by_site[site_id] = (
            self.content_rows_by_site.get(site_id, 0) + rows
        )
        self.migration_summary["content_rows_rewritten"] += rows

    def record_purge(self, site_id: int, rows: int) -> None:
        self.record_site(site_id)
        self.purged_by_site[site_id] = self.purged_by_site.get(site_id, 0) + rows
        self.migration_summary["items_purged"] += rows

    @property
    def has_errors(self) -> bool:
        """Return True if any media item failed to migrate."""
        return bool(self.failed_items)

    @property
    def success_rate(self) -> float:
        """Return percentage of migrated items out of those found.

        Returns 100.0 if no items were found.
        """
        found = self.migration_summary["items_found"]
        if found == 0:
            return 100.0
        return (self.migration_summary["items_migrated"] / found) * 100.0
