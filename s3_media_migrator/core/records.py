"""Migration record types and the pure record-building step of reconciliation.

A media item reaches reconciliation from one of two sources: a previously
stored item (``LegacySource``), or fresh attachment metadata
(``MetadataSource``). ``build_record`` turns either into the
``MigrationRecord`` that gets persisted.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from s3_media_migrator.services.settings import StorageSettings


def join_key(prefix: str, file: str) -> str:
    """Join an object prefix and a bucket-relative file path with one slash."""
    prefix = prefix.strip("/")
    file = file.lstrip("/")
    if not prefix:
        return file
    return f"{prefix}/{file}"


def sibling_path(path: str, filename: str) -> str:
    """Return ``filename`` placed in the same directory as ``path``."""
    directory = posixpath.dirname(path)
    if not directory:
        return filename
    return f"{directory}/{filename}"


@dataclass(frozen=True)
class MigrationRecord:
    """The canonical object-storage location of one media item."""

    provider: str
    region: str
    bucket: str
    path: str
    is_private: bool
    source_id: int
    source_path: str
    original_filename: str
    extra_info: dict[str, Any] = field(default_factory=dict)
    id: int | None = None  # set when updating an already stored item

    @property
    def original_path(self) -> str:
        return sibling_path(self.path, self.original_filename)

    @property
    def original_source_path(self) -> str:
        return sibling_path(self.source_path, self.original_filename)


@dataclass(frozen=True)
class StoredItem:
    """A migration record as read back from an item store.

    ``id`` is the store's own identifier for the row, or None when the item was
    recovered from data the store does not own (legacy post meta).
    """

    provider: str
    region: str
    bucket: str
    path: str
    is_private: bool
    source_id: int
    source_path: str
    original_source_path: str
    extra_info: dict[str, Any] = field(default_factory=dict)
    id: int | None = None


@dataclass(frozen=True)
class LegacySource:
    """Reconcile from an item that was already recorded."""

    item: StoredItem


@dataclass(frozen=True)
class MetadataSource:
    """Reconcile from the attachment's local file path."""

    source_id: int
    file: str


ReconciliationSource = Union[LegacySource, MetadataSource]


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Result of reconciling one media item."""

    source_id: int
    item_id: int | None = None
    error: str | None = None
    from_legacy: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(
        cls, source_id: int, error: str, from_legacy: bool = False
    ) -> ReconciliationOutcome:
        return cls(source_id=source_id, error=error, from_legacy=from_legacy)


def build_record(
    source: ReconciliationSource, settings: StorageSettings, folder_prefix: str
) -> MigrationRecord:
    """Build the record to persist for one media item.

    Legacy items are copied field for field; only the original filename is
    re-derived from the stored original source path. New items take their
    location from the storage settings and are public with no extra info.

    Args:
        source: Where the item's data comes from
        settings: Resolved storage settings for this run
        folder_prefix: Object prefix for the current site

    Returns:
        The MigrationRecord to hand to the item store
    """
    if isinstance(source, LegacySource):
        item = source.item
        return MigrationRecord(
            provider=item.provider,
            region=item.region,
            bucket=item.bucket,
            path=item.path,
            is_private=item.is_private,
            source_id=item.source_id,
            source_path=item.source_path,
            original_filename=posixpath.basename(item.original_source_path),
            extra_info=dict(item.extra_info),
            id=item.id,
        )

    if isinstance(source, MetadataSource):
        return MigrationRecord(
            provider=settings.provider,
            region=settings.region,
            bucket=settings.bucket,
            path=join_key(folder_prefix, source.file),
            is_private=False,
            source_id=source.source_id,
            source_path=source.file,
            original_filename=posixpath.basename(source.file),
            extra_info={},
        )

    raise TypeError(f"Unsupported reconciliation source: {type(source).__name__}")
