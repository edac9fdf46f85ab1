"""
Persistence of migration records.

Two backends are supported, matching the two storage layouts the offload
plugin has used over time:

- ``ItemsTableStore`` writes rows to the plugin's dedicated ``as3cf_items``
  table. Items recorded by older plugin versions as ``amazonS3_info`` post meta
  are still found by ``get_by_source_id`` so they can be carried over.
- ``PostMetaStore`` writes the legacy ``amazonS3_info`` post meta directly.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional, Protocol, cast

from sqlalchemy import and_, delete, exists, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from s3_media_migrator.core.config import ItemStoreBackend
from s3_media_migrator.core.records import MigrationRecord, StoredItem
from s3_media_migrator.exceptions import StorageError
from s3_media_migrator.services.attachments import ATTACHED_FILE_KEY
from s3_media_migrator.services.database import WordPressDatabase
from s3_media_migrator.types import LegacyS3Info
from s3_media_migrator.utils.logging import log_with_context
from s3_media_migrator.utils.serialization import serialize, unserialize

LEGACY_META_KEY = "amazonS3_info"
SOURCE_TYPE = "media-library"
DEFAULT_PROVIDER = "aws"


class ItemStore(Protocol):
    """Where migration records are read from and written to."""

    def prepare(self) -> None:
        """Make sure the backing storage exists."""

    def get_by_source_id(self, source_id: int) -> Optional[StoredItem]:
        """Return the stored item of an attachment, if any."""

    def save(self, record: MigrationRecord) -> int:
        """Insert or update a record and return its item id."""

    def list_unmigrated_source_ids(self) -> list[int]:
        """Attachment ids of the active site that have no record yet, ascending."""

    def purge(self) -> int:
        """Delete every record of the active site and return how many were removed."""


def parse_legacy_s3_info(raw: Optional[str]) -> Optional[LegacyS3Info]:
    """Unserialize an ``amazonS3_info`` meta value; None if absent or unusable."""
    if not raw:
        return None
    try:
        value = unserialize(raw)
    except ValueError:
        return None
    if not isinstance(value, dict) or not value.get("key"):
        return None
    return cast(LegacyS3Info, value)


def _validate(record: MigrationRecord) -> None:
    if not record.bucket or not record.region:
        raise StorageError(
            f"Refusing to save attachment {record.source_id} without bucket and region"
        )


class _PostMetaMixin:
    """Reading legacy ``amazonS3_info`` post meta, shared by both backends."""

    db: WordPressDatabase

    def _legacy_item(self, source_id: int) -> Optional[StoredItem]:
        row = self.db.get_post_meta_row(source_id, LEGACY_META_KEY)
        if row is None:
            return None
        meta_id, raw = row
        info = parse_legacy_s3_info(raw)
        if info is None:
            log_with_context(
                logging.WARNING,
                f"Ignoring unreadable {LEGACY_META_KEY} meta",
                source_id=source_id,
            )
            return None

        source_path = self.db.get_post_meta(source_id, ATTACHED_FILE_KEY) or info["key"]
        return StoredItem(
            provider=info.get("provider") or DEFAULT_PROVIDER,
            region=info.get("region") or "",
            bucket=info.get("bucket") or "",
            path=info["key"],
            is_private=info.get("acl") == "private",
            source_id=source_id,
            source_path=source_path,
            original_source_path=source_path,
            id=meta_id,
        )


class ItemsTableStore(_PostMetaMixin):
    """Records stored as rows of the ``as3cf_items`` table."""

    def __init__(self, db: WordPressDatabase):
        self.db = db

    def prepare(self) -> None:
        table = self.db.items
        if not self.db.table_exists(table.name):
            log_with_context(
                logging.WARNING, f"Items table {table.name} is missing, creating it"
            )
            try:
                self.db.create_tables(table)
            except SQLAlchemyError as e:
                raise StorageError(f"Could not create {table.name}: {e}") from e

    def get_by_source_id(self, source_id: int) -> Optional[StoredItem]:
        items = self.db.items
        try:
            with self.db.engine.connect() as conn:
                row = conn.execute(
                    select(items)
                    .where(items.c.source_id == source_id)
                    .where(items.c.source_type == SOURCE_TYPE)
                    .order_by(items.c.id)
                    .limit(1)
                ).first()
            if row is not None:
                return self._from_row(row._mapping)
            legacy = self._legacy_item(source_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read item of attachment {source_id}: {e}") from e

        if legacy is None:
            return None
        # The post meta id is meaningless in this table; the save inserts a row
        return replace(legacy, id=None)

    def _from_row(self, row: Any) -> StoredItem:
        extra_info: dict[str, Any] = {}
        if row["extra_info"]:
            try:
                loaded = unserialize(row["extra_info"])
                if isinstance(loaded, dict):
                    extra_info = loaded
            except ValueError:
                log_with_context(
                    logging.WARNING,
                    f"Item {row['id']} has unreadable extra_info, dropping it",
                    source_id=row["source_id"],
                )
        return StoredItem(
            provider=row["provider"],
            region=row["region"],
            bucket=row["bucket"],
            path=row["path"],
            is_private=bool(row["is_private"]),
            source_id=int(row["source_id"]),
            source_path=row["source_path"],
            original_source_path=row["original_source_path"],
            extra_info=extra_info,
            id=int(row["id"]),
        )

    def save(self, record: MigrationRecord) -> int:
        _validate(record)
        items = self.db.items
        values = {
            "provider": record.provider,
            "region": record.region,
            "bucket": record.bucket,
            "path": record.path,
            "original_path": record.original_path,
            "is_private": int(record.is_private),
            "source_type": SOURCE_TYPE,
            "source_id": record.source_id,
            "source_path": record.source_path,
            "original_source_path": record.original_source_path,
            "extra_info": serialize(record.extra_info),
            "originator": 0,
            "is_verified": 1,
        }
        try:
            with self.db.engine.begin() as conn:
                item_id = record.id
                if item_id is None:
                    item_id = conn.execute(
                        select(items.c.id)
                        .where(items.c.source_id == record.source_id)
                        .where(items.c.source_type == SOURCE_TYPE)
                        .order_by(items.c.id)
                        .limit(1)
                    ).scalar()
                if item_id is not None:
                    result = conn.execute(
                        update(items).where(items.c.id == item_id).values(**values)
                    )
                    if result.rowcount:
                        return int(item_id)
                result = conn.execute(insert(items).values(**values))
                return int(result.inserted_primary_key[0])
        except SQLAlchemyError as e:
            raise StorageError(
                f"Could not save item of attachment {record.source_id}: {e}"
            ) from e

    def list_unmigrated_source_ids(self) -> list[int]:
        posts = self.db.posts
        items = self.db.items
        query = (
            select(posts.c.ID)
            .select_from(
                posts.outerjoin(
                    items,
                    and_(
                        items.c.source_id == posts.c.ID,
                        items.c.source_type == SOURCE_TYPE,
                    ),
                )
            )
            .where(posts.c.post_type == "attachment")
            .where(items.c.id.is_(None))
            .order_by(posts.c.ID)
        )
        try:
            with self.db.engine.connect() as conn:
                return [int(post_id) for post_id in conn.execute(query).scalars()]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not list unmigrated attachments: {e}") from e

    def purge(self) -> int:
        items = self.db.items
        if not self.db.table_exists(items.name):
            return 0
        try:
            with self.db.engine.begin() as conn:
                result = conn.execute(delete(items))
        except SQLAlchemyError as e:
            raise StorageError(f"Could not purge {items.name}: {e}") from e
        return max(result.rowcount or 0, 0)


class PostMetaStore(_PostMetaMixin):
    """Records stored as serialized ``amazonS3_info`` post meta.

    This layout has no room for ``extra_info`` or the original file name;
    only the fields the legacy plugin reads are written.
    """

    def __init__(self, db: WordPressDatabase):
        self.db = db

    def prepare(self) -> None:
        """Post meta always exists."""

    def get_by_source_id(self, source_id: int) -> Optional[StoredItem]:
        try:
            return self._legacy_item(source_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read item of attachment {source_id}: {e}") from e

    def save(self, record: MigrationRecord) -> int:
        _validate(record)
        info: dict[str, Any] = {
            "provider": record.provider,
            "region": record.region,
            "bucket": record.bucket,
            "key": record.path,
        }
        if record.is_private:
            info["acl"] = "private"
        meta_value = serialize(info)

        postmeta = self.db.postmeta
        try:
            with self.db.engine.begin() as conn:
                meta_id = record.id
                if meta_id is None:
                    existing = self.db.get_post_meta_row(
                        record.source_id, LEGACY_META_KEY, conn=conn
                    )
                    meta_id = existing[0] if existing else None
                if meta_id is not None:
                    result = conn.execute(
                        update(postmeta)
                        .where(postmeta.c.meta_id == meta_id)
                        .values(meta_value=meta_value)
                    )
                    if result.rowcount:
                        return int(meta_id)
                result = conn.execute(
                    insert(postmeta).values(
                        post_id=record.source_id,
                        meta_key=LEGACY_META_KEY,
                        meta_value=meta_value,
                    )
                )
                return int(result.inserted_primary_key[0])
        except SQLAlchemyError as e:
            raise StorageError(
                f"Could not save item of attachment {record.source_id}: {e}"
            ) from e

    def list_unmigrated_source_ids(self) -> list[int]:
        posts = self.db.posts
        postmeta = self.db.postmeta
        has_info = exists().where(
            and_(
                postmeta.c.post_id == posts.c.ID,
                postmeta.c.meta_key == LEGACY_META_KEY,
            )
        )
        query = (
            select(posts.c.ID)
            .where(posts.c.post_type == "attachment")
            .where(~has_info)
            .order_by(posts.c.ID)
        )
        try:
            with self.db.engine.connect() as conn:
                return [int(post_id) for post_id in conn.execute(query).scalars()]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not list unmigrated attachments: {e}") from e

    def purge(self) -> int:
        postmeta = self.db.postmeta
        try:
            with self.db.engine.begin() as conn:
                result = conn.execute(
                    delete(postmeta).where(postmeta.c.meta_key == LEGACY_META_KEY)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Could not purge {LEGACY_META_KEY} meta: {e}") from e
        return max(result.rowcount or 0, 0)


def make_item_store(backend: ItemStoreBackend, db: WordPressDatabase) -> ItemStore:
    """Create the item store for the configured backend."""
    if backend == ItemStoreBackend.POSTMETA:
        return PostMetaStore(db)
    return ItemsTableStore(db)
