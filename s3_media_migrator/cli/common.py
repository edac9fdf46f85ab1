"""Shared CLI infrastructure: option decorators, error handlers, and the CLI group."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, ClassVar, Optional

import click
from sqlalchemy.exc import SQLAlchemyError

import s3_media_migrator
from s3_media_migrator.core.config import load_config
from s3_media_migrator.core.context import MigrationContext
from s3_media_migrator.exceptions import ConfigError, MigratorError
from s3_media_migrator.utils.logging import log_with_context

# Create logger instance
logger = logging.getLogger("s3_media_migrator")


# ---------------------------------------------------------------------------
# Custom click.Group that defaults to ``migrate``.
# With no arguments, or when the first CLI token starts with ``-`` (i.e. a
# flag, not a subcommand), the group silently prepends ``migrate`` so that
# both ``s3-media-migrate`` and ``s3-media-migrate --output --protocol http``
# run a migration.
# ---------------------------------------------------------------------------


class DefaultGroup(click.Group):
    """Click group that defaults to the ``migrate`` subcommand."""

    # Flags that belong to the group itself and should NOT trigger the
    # ``migrate`` default.
    _GROUP_FLAGS: ClassVar[set[str]] = {"--help", "--version", "-h"}

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        """Prepend ``migrate`` when there are no arguments or the first is a flag.

        Args:
            ctx: The current Click context.
            args: Raw CLI argument list.

        Returns:
            The (possibly modified) argument list for further parsing.
        """
        if not args or (
            args[0].startswith("-") and args[0] not in self._GROUP_FLAGS
        ):
            args = ["migrate", *args]
        return super().parse_args(ctx, args)


# ---------------------------------------------------------------------------
# Shared option decorator
# ---------------------------------------------------------------------------


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds options shared across multiple subcommands.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with common options attached.
    """
    f = click.option(
        "--config",
        default="config.yaml",
        show_default=True,
        help="Path to config YAML",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose console logging (shows DEBUG level messages)",
    )(f)
    f = click.option(
        "--debug_sql",
        is_flag=True,
        default=False,
        help="Log every SQL statement (creates large log files)",
    )(f)
    return f


def protocol_option(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator for the URL scheme used when building remote media URLs."""
    return click.option(
        "--protocol",
        type=click.Choice(["https", "http"]),
        default="https",
        show_default=True,
        help="Protocol of the rewritten media URLs",
    )(f)


def build_context(
    config: str,
    verbose: bool,
    debug_sql: bool,
    output_dir: Optional[str] = None,
    **flags: Any,
) -> MigrationContext:
    """Load the configuration and freeze it together with the CLI flags.

    Args:
        config: Path to the config YAML.
        verbose: Verbose console logging.
        debug_sql: SQL statement logging.
        output_dir: Run output directory, if files should be written.
        **flags: Remaining MigrationContext fields.

    Returns:
        The MigrationContext for this run.

    Raises:
        ConfigError: If the configuration contains invalid values.
    """
    config_path = Path(config)
    try:
        loaded = load_config(config_path)
    except ValueError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    return MigrationContext(
        config=loaded,
        config_path=config_path,
        output_dir=output_dir,
        verbose=verbose,
        debug_sql=debug_sql,
        **flags,
    )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(
    cls=DefaultGroup,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(
    version=s3_media_migrator.__version__, prog_name="s3-media-migrate"
)
def cli() -> None:
    """WordPress media library to S3 migration tool.

    Runs ``migrate`` when called without a subcommand.
    """


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def handle_exception(e: BaseException) -> None:
    """Handle different types of exceptions.

    Args:
        e: The exception to handle.
    """
    if isinstance(e, MigratorError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, SQLAlchemyError):
        log_with_context(logging.ERROR, f"Database error: {e}")
        log_with_context(
            logging.INFO,
            "Check database.url and database.table_prefix in your config.yaml.",
        )
    elif isinstance(e, FileNotFoundError):
        log_with_context(logging.ERROR, f"File not found: {e}")
        log_with_context(
            logging.INFO,
            "Please check that all required files exist and paths are correct.",
        )
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Migration interrupted by user.")
        log_with_context(
            logging.INFO,
            "Items processed so far are saved; run the migration again to continue.",
        )
    else:
        log_with_context(logging.ERROR, f"Migration failed: {e}", exc_info=True)
