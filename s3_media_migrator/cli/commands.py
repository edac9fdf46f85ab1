"""Entry point of the click CLI.

Importing the command modules registers their subcommands on ``cli``.
"""

from s3_media_migrator.cli import (  # noqa: F401
    check_cmd,
    config_cmd,
    migrate_cmd,
    purge_cmd,
    rewrite_cmd,
)
from s3_media_migrator.cli.common import cli, handle_exception

__all__ = ["cli", "handle_exception", "main"]


def main() -> None:
    """Run the CLI."""
    cli()
