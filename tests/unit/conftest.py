"""Unit test configuration and shared fixtures."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pytest
from sqlalchemy import create_engine, insert, select
from sqlalchemy.pool import StaticPool

from s3_media_migrator.core.config import MigrationConfig
from s3_media_migrator.core.context import MigrationContext
from s3_media_migrator.services.attachments import (
    ATTACHED_FILE_KEY,
    ATTACHMENT_METADATA_KEY,
)
from s3_media_migrator.services.database import WordPressDatabase
from s3_media_migrator.services.settings import StorageSettings
from s3_media_migrator.utils.logging import LOGGER_NAME
from s3_media_migrator.utils.serialization import serialize

ACTIVE_PLUGIN = "amazon-s3-and-cloudfront/wordpress-s3.php"
SITE_URL = "https://example.com"

# ---------------------------------------------------------------------------
# WordPress database builder
# ---------------------------------------------------------------------------


class WordPressFixture:
    """Seeds and inspects a throwaway WordPress database."""

    def __init__(self, db: WordPressDatabase):
        self.db = db

    def _tables(self, site_id: int) -> _SiteTables:
        # Table objects are cached on the metadata, so they stay valid after
        # the active site is reset.
        previous = self.db.site_id
        self.db.site_id = site_id
        try:
            return _SiteTables(
                self.db.posts, self.db.postmeta, self.db.options, self.db.items
            )
        finally:
            self.db.site_id = previous

    def create_site(
        self, site_id: int = 1, siteurl: str = SITE_URL, with_items_table: bool = True
    ) -> None:
        t = self._tables(site_id)
        tables = [t.posts, t.postmeta, t.options]
        if with_items_table:
            tables.append(t.items)
        self.db.create_tables(*tables)
        self.add_option("siteurl", siteurl, site_id=site_id)

    def create_network(self, *blog_ids: int, network_id: int = 1) -> None:
        self.db.create_tables(self.db.blogs, self.db.sitemeta)
        with self.db.engine.begin() as conn:
            for blog_id in blog_ids:
                conn.execute(
                    insert(self.db.blogs).values(
                        blog_id=blog_id,
                        site_id=network_id,
                        domain="example.com",
                        path=f"/site{blog_id}/",
                    )
                )

    def add_option(self, name: str, value: Any, site_id: int = 1) -> None:
        raw = value if isinstance(value, str) else serialize(value)
        with self.db.engine.begin() as conn:
            conn.execute(
                insert(self._tables(site_id).options).values(
                    option_name=name, option_value=raw
                )
            )

    def add_site_option(self, key: str, value: Any, network_id: int = 1) -> None:
        raw = value if isinstance(value, str) else serialize(value)
        with self.db.engine.begin() as conn:
            conn.execute(
                insert(self.db.sitemeta).values(
                    site_id=network_id, meta_key=key, meta_value=raw
                )
            )

    def add_post(
        self,
        post_id: int,
        content: str = "",
        post_type: str = "post",
        site_id: int = 1,
    ) -> None:
        with self.db.engine.begin() as conn:
            conn.execute(
                insert(self._tables(site_id).posts).values(
                    ID=post_id, post_type=post_type, post_content=content
                )
            )

    def add_meta(self, post_id: int, key: str, value: Any, site_id: int = 1) -> None:
        raw = value if isinstance(value, str) else serialize(value)
        with self.db.engine.begin() as conn:
            conn.execute(
                insert(self._tables(site_id).postmeta).values(
                    post_id=post_id, meta_key=key, meta_value=raw
                )
            )

    def add_attachment(
        self,
        post_id: int,
        file: str = "2023/05/photo.jpg",
        site_id: int = 1,
        metadata: Optional[Any] = None,
        with_metadata: bool = True,
        attached_file: Optional[str] = None,
    ) -> None:
        """Add an attachment post with its metadata and attached file meta."""
        self.add_post(post_id, post_type="attachment", site_id=site_id)
        if with_metadata:
            value = metadata if metadata is not None else {
                "file": file,
                "width": 800,
                "height": 600,
            }
            self.add_meta(post_id, ATTACHMENT_METADATA_KEY, value, site_id=site_id)
        attached = file if attached_file is None else attached_file
        if attached:
            self.add_meta(post_id, ATTACHED_FILE_KEY, attached, site_id=site_id)

    def post_content(self, post_id: int, site_id: int = 1) -> str:
        posts = self._tables(site_id).posts
        with self.db.engine.connect() as conn:
            return conn.execute(
                select(posts.c.post_content).where(posts.c.ID == post_id)
            ).scalar_one()

    def meta_values(self, key: str, site_id: int = 1) -> list[tuple[int, str]]:
        postmeta = self._tables(site_id).postmeta
        with self.db.engine.connect() as conn:
            return [
                (row.post_id, row.meta_value)
                for row in conn.execute(
                    select(postmeta.c.post_id, postmeta.c.meta_value)
                    .where(postmeta.c.meta_key == key)
                    .order_by(postmeta.c.meta_id)
                )
            ]

    def item_rows(self, site_id: int = 1) -> list[dict[str, Any]]:
        items = self._tables(site_id).items
        with self.db.engine.connect() as conn:
            return [
                dict(row._mapping)
                for row in conn.execute(select(items).order_by(items.c.id))
            ]


class _SiteTables:
    def __init__(self, posts, postmeta, options, items):
        self.posts = posts
        self.postmeta = postmeta
        self.options = options
        self.items = items


@pytest.fixture(autouse=True)
def reset_migrator_logger():
    """Detach handlers that CLI runs attach to the package logger."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture()
def wp_factory():
    """Factory for single-site WordPress databases at a given SQLAlchemy URL."""
    engines = []

    def _make(url: str = "sqlite://", plugin_active: bool = True) -> WordPressFixture:
        if url == "sqlite://":
            engine = create_engine(
                url,
                future=True,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(url, future=True)
        engines.append(engine)
        fixture = WordPressFixture(WordPressDatabase(engine))
        fixture.create_site(1)
        if plugin_active:
            fixture.add_option("active_plugins", [ACTIVE_PLUGIN])
        return fixture

    yield _make
    for engine in engines:
        engine.dispose()


@pytest.fixture()
def wp(wp_factory):
    """A single-site WordPress database in memory with the offload plugin active."""
    return wp_factory()


# ---------------------------------------------------------------------------
# Configuration builders
# ---------------------------------------------------------------------------


@pytest.fixture()
def storage_settings():
    """Resolved settings for a bucket served from its path-style URL."""
    return StorageSettings(provider="aws", region="eu-central-1", bucket="media-bucket")


def _make_config(**overrides: Any) -> MigrationConfig:
    """Build a MigrationConfig pointing at ``media-bucket`` in eu-central-1.

    ``storage_<field>`` and ``database_<field>`` keys set fields of the
    nested sections, anything else is set on the config itself.
    """
    config = MigrationConfig()
    config.storage.bucket = "media-bucket"
    config.storage.region = "eu-central-1"
    config.database.multisite = False
    for key, value in overrides.items():
        if key.startswith("storage_"):
            setattr(config.storage, key[len("storage_"):], value)
        elif key.startswith("database_"):
            setattr(config.database, key[len("database_"):], value)
        else:
            setattr(config, key, value)
    return config


def _make_context(config: Optional[MigrationConfig] = None, **flags: Any) -> MigrationContext:
    """Build a MigrationContext around ``config`` (default: ``_make_config()``)."""
    return MigrationContext(
        config=config or _make_config(),
        config_path=Path("config.yaml"),
        **flags,
    )


@pytest.fixture()
def make_config():
    """Factory fixture for MigrationConfig objects, see ``_make_config``."""
    return _make_config


@pytest.fixture()
def make_ctx():
    """Factory fixture for MigrationContext objects."""
    return _make_context


@pytest.fixture()
def active_plugin():
    """Slug of the offload plugin the ``wp`` fixture activates."""
    return ACTIVE_PLUGIN
