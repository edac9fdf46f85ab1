"""
Per-item reconciliation of media library attachments.

``MigrationReconciler`` decides, for one attachment, which record it should
have in the item store and persists it. Failures are confined to the item:
they come back as failed outcomes and never stop the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Optional

from s3_media_migrator.core.records import (
    LegacySource,
    MetadataSource,
    ReconciliationOutcome,
    ReconciliationSource,
    build_record,
)
from s3_media_migrator.exceptions import MetadataError, StorageError
from s3_media_migrator.services.attachments import Attachments
from s3_media_migrator.services.item_store import ItemStore
from s3_media_migrator.services.settings import StorageSettings
from s3_media_migrator.utils.logging import log_failed_item, log_with_context


class MigrationReconciler:
    """Reconciles the attachments of one site against an item store."""

    def __init__(
        self,
        store: ItemStore,
        attachments: Attachments,
        settings: StorageSettings,
        folder_prefix: str,
        site_id: int = 1,
    ):
        self.store = store
        self.attachments = attachments
        self.settings = settings
        self.folder_prefix = folder_prefix
        self.site_id = site_id

    def _source_for(self, source_id: int) -> ReconciliationSource:
        item = self.store.get_by_source_id(source_id)
        if item is not None:
            return LegacySource(item)
        return MetadataSource(source_id, self.attachments.resolve_file(source_id))

    def reconcile(self, source_id: int) -> ReconciliationOutcome:
        """
        Build and persist the record of one attachment.

        Args:
            source_id: The attachment post id

        Returns:
            The outcome, carrying the item id on success or the error otherwise
        """
        from_legacy = False
        try:
            source = self._source_for(source_id)
            from_legacy = isinstance(source, LegacySource)
            record = build_record(source, self.settings, self.folder_prefix)
            item_id = self.store.save(record)
        except (MetadataError, StorageError) as e:
            log_failed_item(self.site_id, source_id, str(e))
            return ReconciliationOutcome.failure(source_id, str(e), from_legacy)

        log_with_context(
            logging.DEBUG,
            f"Recorded {record.path} as item {item_id}"
            + (" (from legacy item)" if from_legacy else ""),
            site=self.site_id,
            source_id=source_id,
        )
        return ReconciliationOutcome(
            source_id=source_id, item_id=item_id, from_legacy=from_legacy
        )

    def reconcile_all(
        self, source_ids: Iterable[int], progress: Optional[Any] = None
    ) -> list[ReconciliationOutcome]:
        """Reconcile items in order, advancing ``progress`` (a tqdm bar) once per item."""
        outcomes = []
        for source_id in source_ids:
            outcomes.append(self.reconcile(source_id))
            if progress is not None:
                progress.update(1)
        return outcomes
