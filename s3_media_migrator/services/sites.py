"""
Site contexts of a (possibly multisite) WordPress install.

Every per-site operation runs inside ``SiteSwitcher.switch`` so the active
site is restored on every exit path, including exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select

from s3_media_migrator.core.config import MigrationConfig
from s3_media_migrator.services.database import WordPressDatabase
from s3_media_migrator.utils.logging import log_with_context


def is_multisite(db: WordPressDatabase, config: MigrationConfig) -> bool:
    """Use the configured value, or detect multisite from the blogs table."""
    if config.database.multisite is not None:
        return bool(config.database.multisite)
    return db.table_exists(db.blogs.name)


def list_site_ids(
    db: WordPressDatabase, config: MigrationConfig, multisite: bool
) -> list[int]:
    """
    Enumerate the site contexts to migrate.

    The current site always comes first. On multisite the network's blog ids
    follow in ascending order; duplicates (the current site itself) are dropped.

    Args:
        db: WordPress database access
        config: Loaded migration configuration
        multisite: Whether the install is a multisite network

    Returns:
        Ordered list of site ids
    """
    site_ids = [config.database.site_id]

    log_with_context(logging.INFO, f"Is Multisite: {'YES' if multisite else 'NO'}")

    if multisite:
        blogs = db.blogs
        with db.engine.connect() as conn:
            rows = conn.execute(
                select(blogs.c.blog_id)
                .where(blogs.c.site_id == config.database.network_id)
                .order_by(blogs.c.blog_id)
            ).scalars()
            for blog_id in rows:
                if int(blog_id) not in site_ids:
                    site_ids.append(int(blog_id))

    log_with_context(logging.DEBUG, f"Found {len(site_ids)} site ids")
    return site_ids


class SiteSwitcher:
    """Scoped switching of the database's active site."""

    def __init__(self, db: WordPressDatabase, multisite: bool):
        self.db = db
        self.multisite = multisite
        self._stack: list[int] = []

    @contextmanager
    def switch(self, site_id: int) -> Iterator[int]:
        """Make ``site_id`` the active site for the duration of the block."""
        if not self.multisite:
            log_with_context(
                logging.DEBUG, "No multisite, no switch necessary", site=site_id
            )
            yield site_id
            return

        self._stack.append(self.db.site_id)
        self.db.site_id = site_id
        log_with_context(logging.INFO, f"Switched to site {site_id}", site=site_id)
        try:
            yield site_id
        finally:
            self.db.site_id = self._stack.pop()
            log_with_context(
                logging.DEBUG,
                f"Restored site {self.db.site_id}",
                site=site_id,
            )
