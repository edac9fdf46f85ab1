"""
Read access to attachment post meta.
"""

from __future__ import annotations

import logging
from typing import cast

from sqlalchemy.exc import SQLAlchemyError

from s3_media_migrator.exceptions import MetadataError
from s3_media_migrator.services.database import WordPressDatabase
from s3_media_migrator.types import AttachmentMetadata
from s3_media_migrator.utils.logging import log_with_context
from s3_media_migrator.utils.serialization import unserialize

ATTACHMENT_METADATA_KEY = "_wp_attachment_metadata"
ATTACHED_FILE_KEY = "_wp_attached_file"


class Attachments:
    """Attachment metadata of the database's active site."""

    def __init__(self, db: WordPressDatabase):
        self.db = db

    def _read_meta(self, source_id: int, key: str) -> str | None:
        try:
            return self.db.get_post_meta(source_id, key)
        except SQLAlchemyError as e:
            raise MetadataError(
                f"Could not read {key} of attachment {source_id}: {e}"
            ) from e

    def get_metadata(self, source_id: int) -> AttachmentMetadata:
        """
        Return the unserialized ``_wp_attachment_metadata`` of an attachment.

        Raises:
            MetadataError: If the meta row is missing, unreadable or cannot be
                unserialized
        """
        raw = self._read_meta(source_id, ATTACHMENT_METADATA_KEY)
        if raw is None:
            raise MetadataError(f"Attachment metadata not found for {source_id}")
        try:
            value = unserialize(raw)
        except ValueError as e:
            raise MetadataError(
                f"Attachment metadata of {source_id} is corrupt: {e}"
            ) from e
        if not isinstance(value, dict):
            raise MetadataError(
                f"Attachment metadata of {source_id} is not an array"
            )
        return cast(AttachmentMetadata, value)

    def get_attached_file(self, source_id: int) -> str | None:
        """Return the ``_wp_attached_file`` value, or None when absent or empty."""
        value = self._read_meta(source_id, ATTACHED_FILE_KEY)
        return value or None

    def resolve_file(self, source_id: int) -> str:
        """
        Return the uploads-relative file path of an attachment.

        Prefers the ``file`` entry of the attachment metadata and falls back to
        the attached file meta.

        Raises:
            MetadataError: If the metadata is unusable or no file path is known
        """
        metadata = self.get_metadata(source_id)
        file = metadata.get("file")
        if file:
            return str(file)

        fallback = self.get_attached_file(source_id)
        if fallback:
            log_with_context(
                logging.DEBUG,
                f"Metadata has no file entry, using {ATTACHED_FILE_KEY}",
                source_id=source_id,
            )
            return fallback

        raise MetadataError(f"No file path recorded for attachment {source_id}")
