"""
WordPress database access.

Wraps a SQLAlchemy engine with the handful of WordPress tables the migration
touches. Table names depend on the active site: site 1 uses the base prefix
(``wp_posts``), every other site of a multisite network gets its id appended
(``wp_3_posts``). Network-wide tables (``wp_blogs``, ``wp_sitemeta``) always
use the base prefix.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    inspect,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine

from s3_media_migrator.utils.logging import log_with_context
from s3_media_migrator.utils.serialization import maybe_unserialize

ITEMS_TABLE_SUFFIX = "as3cf_items"


def create_database_engine(url: str, echo: bool = False) -> Engine:
    """Create the SQLAlchemy engine for the WordPress database."""
    return create_engine(url, echo=echo, future=True, pool_pre_ping=True)


class WordPressDatabase:
    """Per-site table access on top of a SQLAlchemy engine.

    ``site_id`` selects which site's tables the properties below return. It is
    changed only through ``SiteSwitcher`` so that it is always restored.
    """

    def __init__(self, engine: Engine, table_prefix: str = "wp_", site_id: int = 1):
        self.engine = engine
        self.base_prefix = table_prefix
        self.site_id = site_id
        self.metadata = MetaData()

    # ------------------------------------------------------------------
    # Table naming
    # ------------------------------------------------------------------

    def prefix_for(self, site_id: int) -> str:
        if site_id in (0, 1):
            return self.base_prefix
        return f"{self.base_prefix}{site_id}_"

    @property
    def prefix(self) -> str:
        return self.prefix_for(self.site_id)

    def _table(self, name: str, *columns: Column) -> Table:
        if name in self.metadata.tables:
            return self.metadata.tables[name]
        return Table(name, self.metadata, *columns)

    # ------------------------------------------------------------------
    # Site tables
    # ------------------------------------------------------------------

    @property
    def posts(self) -> Table:
        return self._table(
            f"{self.prefix}posts",
            Column("ID", BigInteger().with_variant(Integer, "sqlite"), primary_key=True),
            Column("post_type", String(20), nullable=False, default="post"),
            Column("post_content", Text, nullable=False, default=""),
        )

    @property
    def postmeta(self) -> Table:
        return self._table(
            f"{self.prefix}postmeta",
            Column("meta_id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True),
            Column("post_id", BigInteger, nullable=False, default=0, index=True),
            Column("meta_key", String(255), nullable=True, index=True),
            Column("meta_value", Text, nullable=True),
        )

    @property
    def options(self) -> Table:
        return self._table(
            f"{self.prefix}options",
            Column("option_id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True),
            Column("option_name", String(191), nullable=False, unique=True),
            Column("option_value", Text, nullable=False, default=""),
            Column("autoload", String(20), nullable=False, default="yes"),
        )

    @property
    def items(self) -> Table:
        """The offload plugin's dedicated media item table."""
        return self._table(
            f"{self.prefix}{ITEMS_TABLE_SUFFIX}",
            Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
            Column("provider", String(18), nullable=False),
            Column("region", String(255), nullable=False),
            Column("bucket", String(255), nullable=False),
            Column("path", String(1024), nullable=False),
            Column("original_path", String(1024), nullable=False),
            Column("is_private", Integer, nullable=False, default=0),
            Column("source_type", String(18), nullable=False),
            Column("source_id", BigInteger, nullable=False, index=True),
            Column("source_path", String(1024), nullable=False),
            Column("original_source_path", String(1024), nullable=False),
            Column("extra_info", Text),
            Column("originator", Integer, nullable=False, default=0),
            Column("is_verified", Integer, nullable=False, default=1),
        )

    # ------------------------------------------------------------------
    # Network tables
    # ------------------------------------------------------------------

    @property
    def blogs(self) -> Table:
        return self._table(
            f"{self.base_prefix}blogs",
            Column("blog_id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True),
            Column("site_id", BigInteger, nullable=False, default=0),
            Column("domain", String(200), nullable=False, default=""),
            Column("path", String(100), nullable=False, default=""),
        )

    @property
    def sitemeta(self) -> Table:
        return self._table(
            f"{self.base_prefix}sitemeta",
            Column("meta_id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True),
            Column("site_id", BigInteger, nullable=False, default=0),
            Column("meta_key", String(255), nullable=True),
            Column("meta_value", Text, nullable=True),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def ping(self) -> None:
        """Run a trivial query; raises SQLAlchemyError if the database is unreachable."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def table_exists(self, name: str) -> bool:
        return inspect(self.engine).has_table(name)

    def get_option(self, name: str, default: Any = None) -> Any:
        """Read (and unserialize) an option of the active site."""
        options = self.options
        with self.engine.connect() as conn:
            value = conn.execute(
                select(options.c.option_value).where(options.c.option_name == name)
            ).scalar()
        if value is None:
            return default
        return maybe_unserialize(value)

    def get_site_option(self, name: str, network_id: int = 1, default: Any = None) -> Any:
        """Read (and unserialize) a network-wide option from the sitemeta table."""
        sitemeta = self.sitemeta
        with self.engine.connect() as conn:
            value = conn.execute(
                select(sitemeta.c.meta_value)
                .where(sitemeta.c.site_id == network_id)
                .where(sitemeta.c.meta_key == name)
                .order_by(sitemeta.c.meta_id)
                .limit(1)
            ).scalar()
        if value is None:
            return default
        return maybe_unserialize(value)

    def get_post_meta_row(
        self, post_id: int, key: str, conn: Connection | None = None
    ) -> tuple[int, str] | None:
        """Return ``(meta_id, raw meta_value)`` of the first matching meta row."""
        postmeta = self.postmeta
        query = (
            select(postmeta.c.meta_id, postmeta.c.meta_value)
            .where(postmeta.c.post_id == post_id)
            .where(postmeta.c.meta_key == key)
            .order_by(postmeta.c.meta_id)
            .limit(1)
        )
        if conn is None:
            with self.engine.connect() as own_conn:
                row = own_conn.execute(query).first()
        else:
            row = conn.execute(query).first()
        if row is None:
            return None
        return int(row.meta_id), row.meta_value

    def get_post_meta(self, post_id: int, key: str) -> str | None:
        """Return the raw value of the first matching meta row, or None."""
        row = self.get_post_meta_row(post_id, key)
        return row[1] if row else None

    def create_tables(self, *tables: Table) -> None:
        """Create the given tables if they don't exist yet."""
        with self.engine.begin() as conn:
            for table in tables:
                table.create(conn, checkfirst=True)
                log_with_context(logging.DEBUG, f"Ensured table {table.name} exists")
