"""
Rewriting of media URLs embedded in post content.

Only URLs that appear as the start of an ``href="..."`` or ``src="..."``
attribute value are touched. Matching is a literal substring match; both
prefixes are passed to the database as bound parameters.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from s3_media_migrator.exceptions import StorageError
from s3_media_migrator.services.database import WordPressDatabase
from s3_media_migrator.utils.logging import log_with_context

REWRITE_ATTRIBUTES = ("href", "src")


def build_replacement(
    attribute: str, local_prefix: str, remote_prefix: str, revert: bool = False
) -> tuple[str, str]:
    """Return the ``(search, replace)`` pair for one attribute."""
    source, target = (remote_prefix, local_prefix) if revert else (local_prefix, remote_prefix)
    return f'{attribute}="{source}', f'{attribute}="{target}'


def replace_urls(
    content: str, local_prefix: str, remote_prefix: str, revert: bool = False
) -> str:
    """Apply the rewrite to a single string, the way the UPDATE does it."""
    for attribute in REWRITE_ATTRIBUTES:
        search, replacement = build_replacement(
            attribute, local_prefix, remote_prefix, revert
        )
        content = content.replace(search, replacement)
    return content


def count_matching_rows(
    db: WordPressDatabase, local_prefix: str, remote_prefix: str, revert: bool = False
) -> dict[str, int]:
    """Number of posts of the active site each attribute rewrite would touch."""
    posts = db.posts
    counts: dict[str, int] = {}
    try:
        with db.engine.connect() as conn:
            for attribute in REWRITE_ATTRIBUTES:
                search, _ = build_replacement(
                    attribute, local_prefix, remote_prefix, revert
                )
                counts[attribute] = int(
                    conn.execute(
                        select(func.count())
                        .select_from(posts)
                        .where(posts.c.post_content.contains(search, autoescape=True))
                    ).scalar()
                    or 0
                )
    except SQLAlchemyError as e:
        raise StorageError(f"Could not count posts to rewrite: {e}") from e
    return counts


def rewrite_post_content(
    db: WordPressDatabase,
    local_prefix: str,
    remote_prefix: str,
    revert: bool = False,
    site_id: int | None = None,
) -> int:
    """
    Rewrite media URLs in the post content of the active site.

    Args:
        db: WordPress database access, switched to the site to rewrite
        local_prefix: URL prefix of the local uploads folder
        remote_prefix: URL prefix of the offloaded media
        revert: Rewrite remote URLs back to local ones instead
        site_id: Only used to tag log records

    Returns:
        Number of distinct post rows updated, a post holding both attributes
        counts once
    """
    posts = db.posts
    replacements = [
        build_replacement(attribute, local_prefix, remote_prefix, revert)
        for attribute in REWRITE_ATTRIBUTES
    ]
    matches = [
        posts.c.post_content.contains(search, autoescape=True)
        for search, _ in replacements
    ]
    try:
        with db.engine.begin() as conn:
            total = int(
                conn.execute(
                    select(func.count()).select_from(posts).where(or_(*matches))
                ).scalar()
                or 0
            )
            for attribute, (search, replacement), match in zip(
                REWRITE_ATTRIBUTES, replacements, matches
            ):
                result = conn.execute(
                    update(posts)
                    .where(match)
                    .values(
                        post_content=func.replace(
                            posts.c.post_content, search, replacement
                        )
                    )
                )
                rows = max(result.rowcount or 0, 0)
                log_with_context(
                    logging.DEBUG,
                    f"Rewrote {attribute} URLs in {rows} posts: {search} -> {replacement}",
                    site=site_id,
                )
    except SQLAlchemyError as e:
        raise StorageError(f"Could not rewrite post content: {e}") from e
    return total
