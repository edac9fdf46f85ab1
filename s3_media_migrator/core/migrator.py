"""
Main migrator class for the S3 media migration tool
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from tqdm import tqdm

from s3_media_migrator.core.context import MigrationContext
from s3_media_migrator.core.preconditions import check_preconditions
from s3_media_migrator.core.reconciler import MigrationReconciler
from s3_media_migrator.core.state import MigrationState
from s3_media_migrator.exceptions import ConfigError
from s3_media_migrator.services.attachments import Attachments
from s3_media_migrator.services.content_rewriter import (
    count_matching_rows,
    rewrite_post_content,
)
from s3_media_migrator.services.database import (
    WordPressDatabase,
    create_database_engine,
)
from s3_media_migrator.services.item_store import ItemStore, make_item_store
from s3_media_migrator.services.settings import (
    StorageSettings,
    resolve_storage_settings,
    uploads_folder,
)
from s3_media_migrator.services.sites import SiteSwitcher, is_multisite, list_site_ids
from s3_media_migrator.utils.logging import (
    close_handler,
    log_with_context,
    setup_site_logger,
)


class MediaMigrator:
    """Migrates the media library records of every site to object storage."""

    def __init__(
        self,
        ctx: MigrationContext,
        db: Optional[WordPressDatabase] = None,
        store: Optional[ItemStore] = None,
        region_lookup: Optional[Callable[[str], str]] = None,
    ):
        self.ctx = ctx
        self.config = ctx.config
        self.state = MigrationState()

        if db is None:
            engine = create_database_engine(self.config.database.url)
            db = WordPressDatabase(
                engine,
                table_prefix=self.config.database.table_prefix,
                site_id=self.config.database.site_id,
            )
        self.db = db
        self.store = store or make_item_store(self.config.item_store, db)
        self.attachments = Attachments(db)
        self.region_lookup = region_lookup

        self._multisite: Optional[bool] = None
        self._settings: Optional[StorageSettings] = None
        self._switcher: Optional[SiteSwitcher] = None

    # ------------------------------------------------------------------
    # Lazily resolved environment
    # ------------------------------------------------------------------

    @property
    def multisite(self) -> bool:
        if self._multisite is None:
            self._multisite = is_multisite(self.db, self.config)
        return self._multisite

    @property
    def switcher(self) -> SiteSwitcher:
        if self._switcher is None:
            self._switcher = SiteSwitcher(self.db, self.multisite)
        return self._switcher

    def resolve_settings(self) -> StorageSettings:
        """Resolve storage settings once per run; raises ConfigError if incomplete."""
        if self._settings is None:
            self._settings = resolve_storage_settings(
                self.config.storage, self.region_lookup
            )
        return self._settings

    def site_ids(self) -> list[int]:
        return list_site_ids(self.db, self.config, self.multisite)

    def check(self) -> None:
        """Run the pre-run checks unless they were skipped on the command line."""
        if self.ctx.skip_precheck:
            log_with_context(
                logging.WARNING,
                "Pre-run checks skipped. This may cause issues during migration.",
            )
            return
        log_with_context(logging.INFO, "Running pre-run checks...")
        check_preconditions(self.db, self.config, self.multisite)
        log_with_context(logging.INFO, "Pre-run checks passed!")

    # ------------------------------------------------------------------
    # URL prefixes
    # ------------------------------------------------------------------

    def site_urls(self, site_id: int, protocol: Optional[str] = None) -> tuple[str, str]:
        """
        Return the local and remote media URL prefixes of the active site.

        Args:
            site_id: The site the database is currently switched to
            protocol: URL scheme of the remote prefix (defaults to the run's)

        Returns:
            ``(local_prefix, remote_prefix)``

        Raises:
            ConfigError: If the site has no siteurl option
        """
        settings = self.resolve_settings()
        folder = uploads_folder(self.config, site_id, self.multisite)

        siteurl = self.db.get_option("siteurl")
        if not siteurl:
            raise ConfigError(f"Site {site_id} has no siteurl option")

        local_prefix = f"{str(siteurl).rstrip('/')}/{folder}"
        remote_prefix = settings.remote_prefix(protocol or self.ctx.protocol, folder)
        return local_prefix, remote_prefix

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    def migrate(self) -> MigrationState:
        """
        Reconcile every unmigrated attachment of every site.

        Settings are resolved before any site is touched, so an incomplete
        setup aborts the run with nothing written.

        Returns:
            The run's MigrationState
        """
        self.state.reset_for_run()
        self.check()
        settings = self.resolve_settings()
        log_with_context(
            logging.INFO, f"Recording items under {settings.bucket_url()}"
        )

        for site_id in self.site_ids():
            self.migrate_site(site_id)

        summary = self.state.migration_summary
        log_with_context(
            logging.INFO,
            f"Migration finished: {summary['items_migrated']} of "
            f"{summary['items_found']} items migrated, {summary['items_failed']} failed",
        )
        return self.state

    def migrate_site(self, site_id: int) -> None:
        """Reconcile (and optionally rewrite content of) one site."""
        settings = self.resolve_settings()
        site_handler = None
        if self.ctx.output_dir:
            site_handler = setup_site_logger(
                self.ctx.output_dir, site_id, self.ctx.verbose
            )

        self.state.current_site = site_id
        try:
            with self.switcher.switch(site_id):
                log_with_context(
                    logging.INFO, f"Starting migration for site {site_id}", site=site_id
                )
                self.store.prepare()
                source_ids = self.store.list_unmigrated_source_ids()
                log_with_context(
                    logging.INFO,
                    f"Found {len(source_ids)} unmigrated attachments",
                    site=site_id,
                )

                folder = uploads_folder(self.config, site_id, self.multisite)
                reconciler = MigrationReconciler(
                    self.store,
                    self.attachments,
                    settings,
                    settings.folder_prefix(folder),
                    site_id=site_id,
                )
                with tqdm(
                    total=len(source_ids), desc=f"Migrating media of site {site_id}"
                ) as pbar:
                    outcomes = reconciler.reconcile_all(source_ids, progress=pbar)
                self.state.record_outcomes(site_id, outcomes)

                failed = sum(1 for o in outcomes if not o.ok)
                if failed:
                    log_with_context(
                        logging.WARNING,
                        f"{failed} of {len(outcomes)} attachments failed",
                        site=site_id,
                    )

                if self.ctx.rewrite_content:
                    self._rewrite_active_site(site_id, revert=False)
        finally:
            self.state.current_site = None
            if site_handler is not None:
                close_handler(site_handler)

    # ------------------------------------------------------------------
    # Content rewrite
    # ------------------------------------------------------------------

    def _rewrite_active_site(self, site_id: int, revert: bool) -> int:
        local_prefix, remote_prefix = self.site_urls(site_id)
        rows = rewrite_post_content(
            self.db, local_prefix, remote_prefix, revert=revert, site_id=site_id
        )
        self.state.record_content_rewrite(site_id, rows)
        log_with_context(
            logging.INFO,
            f"Rewrote media URLs in {rows} post rows",
            site=site_id,
        )
        return rows

    def rewrite_content(
        self, revert: bool = False, preview: bool = False
    ) -> dict[int, dict[str, int]]:
        """
        Rewrite (or preview rewriting) media URLs in the post content of every site.

        Args:
            revert: Turn remote URLs back into local ones
            preview: Only count matching rows, write nothing

        Returns:
            Per site, the matching row counts per attribute (preview) or the
            number of rows rewritten under the key ``rows``
        """
        self.state.reset_for_run()
        self.check()
        self.resolve_settings()

        results: dict[int, dict[str, int]] = {}
        for site_id in self.site_ids():
            with self.switcher.switch(site_id):
                self.state.record_site(site_id)
                if preview:
                    local_prefix, remote_prefix = self.site_urls(site_id)
                    counts = count_matching_rows(
                        self.db, local_prefix, remote_prefix, revert=revert
                    )
                    source, target = (
                        (remote_prefix, local_prefix)
                        if revert
                        else (local_prefix, remote_prefix)
                    )
                    log_with_context(
                        logging.INFO,
                        f"Would rewrite {source} -> {target} "
                        f"(href: {counts['href']} posts, src: {counts['src']} posts)",
                        site=site_id,
                    )
                    results[site_id] = counts
                else:
                    results[site_id] = {
                        "rows": self._rewrite_active_site(site_id, revert)
                    }
        return results

    # ------------------------------------------------------------------
    # Purge
    # ------------------------------------------------------------------

    def purge(self) -> int:
        """
        Delete every persisted migration record of every site.

        Returns:
            Total number of records removed
        """
        self.check()
        self.state.reset_for_run()
        total = 0
        for site_id in self.site_ids():
            with self.switcher.switch(site_id):
                rows = self.store.purge()
            self.state.record_purge(site_id, rows)
            log_with_context(
                logging.INFO, f"Purged {rows} migration records", site=site_id
            )
            total += rows
        log_with_context(logging.INFO, f"Purge done, {total} records removed")
        return total
