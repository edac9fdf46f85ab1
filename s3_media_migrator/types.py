"""Shared type definitions for the S3 media migration tool.

Provides TypedDicts for structured data flowing through the migration pipeline:
WordPress meta value shapes as they come out of the database, and internal
tracking types used for reporting.
"""

from __future__ import annotations

from typing import Any, TypedDict

# ---------------------------------------------------------------------------
# WordPress meta shapes (unserialized from wp_postmeta.meta_value)
# ---------------------------------------------------------------------------


class AttachmentSize(TypedDict, total=False):
    """One generated image size inside ``_wp_attachment_metadata``."""

    file: str
    width: int
    height: int
    mime_type: str


class AttachmentMetadata(TypedDict, total=False):
    """The ``_wp_attachment_metadata`` value of an attachment post."""

    file: str
    width: int
    height: int
    filesize: int
    sizes: dict[str, AttachmentSize]
    image_meta: dict[str, Any]


class LegacyS3Info(TypedDict, total=False):
    """The legacy ``amazonS3_info`` post meta written by older plugin versions."""

    provider: str
    region: str
    bucket: str
    key: str
    acl: str


# ---------------------------------------------------------------------------
# Internal tracking types
# ---------------------------------------------------------------------------


class MigrationSummary(TypedDict):
    """Aggregate migration counters."""

    sites_processed: list[int]
    items_found: int
    items_migrated: int
    items_from_legacy: int
    items_failed: int
    items_purged: int
    content_rows_rewritten: int


class FailedItem(TypedDict):
    """A media item that failed to migrate."""

    site_id: int
    source_id: int
    error: str
