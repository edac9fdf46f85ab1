"""Core migration logic including configuration and orchestration."""

__all__ = [
    "config",
    "context",
    "migrator",
    "preconditions",
    "reconciler",
    "records",
    "state",
]
