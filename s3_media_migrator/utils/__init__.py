"""Shared utilities for logging and PHP value serialization."""

__all__ = [
    "logging",
    "serialization",
]
