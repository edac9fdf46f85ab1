"""Immutable migration context.

MigrationContext is a frozen dataclass that holds the configuration and
command-line flags for a migration run. It is created once by the CLI and
shared (read-only) with the migrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from s3_media_migrator.core.config import MigrationConfig


@dataclass(frozen=True)
class MigrationContext:
    """Immutable context for a migration run. Created once, shared everywhere."""

    # Loaded configuration
    config: MigrationConfig
    config_path: Path

    # Where logs and the report are written (None = no files)
    output_dir: Optional[str] = None

    # Mode flags
    verbose: bool = False
    debug_sql: bool = False
    show_output: bool = False
    protocol: str = "https"
    skip_precheck: bool = False
    skip_content_rewrite: bool = False

    @property
    def rewrite_content(self) -> bool:
        """True when post content should be rewritten after reconciliation."""
        return self.config.rewrite_content and not self.skip_content_rewrite
