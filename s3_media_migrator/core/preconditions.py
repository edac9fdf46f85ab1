"""
Checks that must pass before a run mutates anything.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import SQLAlchemyError

from s3_media_migrator.core.config import MigrationConfig
from s3_media_migrator.exceptions import PreconditionError
from s3_media_migrator.services.database import WordPressDatabase
from s3_media_migrator.utils.logging import log_with_context
from s3_media_migrator.utils.serialization import as_list


def parse_version(version: str) -> tuple[int, ...]:
    """Turn ``"2.6.1"`` (or ``"2.6-beta"``) into a comparable tuple of ints."""
    return tuple(int(part) for part in re.findall(r"\d+", str(version)))


def active_plugins(
    db: WordPressDatabase, config: MigrationConfig, multisite: bool
) -> set[str]:
    """Plugins active on the current site, plus network-activated ones on multisite."""
    active = {str(p) for p in as_list(db.get_option("active_plugins", []))}
    if multisite:
        network = db.get_site_option(
            "active_sitewide_plugins", config.database.network_id, {}
        )
        if isinstance(network, dict):
            active.update(str(slug) for slug in network)
    return active


def check_preconditions(
    db: WordPressDatabase, config: MigrationConfig, multisite: bool
) -> None:
    """
    Verify the install is ready for migration.

    Args:
        db: WordPress database access, on the current site
        config: Loaded migration configuration
        multisite: Whether the install is a multisite network

    Raises:
        PreconditionError: If the database is unreachable, the offload plugin
            is not active, or its version is older than required
    """
    try:
        db.ping()
    except SQLAlchemyError as e:
        raise PreconditionError(f"Could not connect to the database: {e}") from e
    log_with_context(logging.INFO, "Database connection OK")

    try:
        active = active_plugins(db, config, multisite)
        installed_version = db.get_option(config.plugin.version_option)
    except (SQLAlchemyError, ValueError) as e:
        raise PreconditionError(f"Could not read plugin settings: {e}") from e

    matching = [slug for slug in config.plugin.slugs if slug in active]
    if not matching:
        raise PreconditionError(
            "The offload media plugin is not active. Expected one of: "
            + ", ".join(config.plugin.slugs)
        )
    log_with_context(logging.INFO, f"Offload plugin active: {matching[0]}")

    if config.plugin.min_version:
        if not installed_version:
            raise PreconditionError(
                f"Plugin version unknown (option {config.plugin.version_option} "
                f"is not set), need at least {config.plugin.min_version}"
            )
        if parse_version(installed_version) < parse_version(config.plugin.min_version):
            raise PreconditionError(
                f"Plugin version {installed_version} is older than the required "
                f"{config.plugin.min_version}"
            )
        log_with_context(logging.INFO, f"Plugin version {installed_version} OK")
