"""Custom exception hierarchy for the S3 media migration tool."""


class MigratorError(Exception):
    """Base exception for all migration-related errors."""


class ConfigError(MigratorError):
    """Raised when configuration or storage settings are invalid or incomplete."""


class PreconditionError(MigratorError):
    """Raised when the WordPress install is not ready for migration."""


class StorageError(MigratorError):
    """Raised when a migration record cannot be read or persisted."""


class MetadataError(MigratorError):
    """Raised when attachment metadata is missing or unreadable."""
