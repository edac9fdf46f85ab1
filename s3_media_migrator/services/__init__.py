"""Access to the WordPress database, S3 and the offload plugin's item storage."""

__all__ = [
    "attachments",
    "content_rewriter",
    "database",
    "item_store",
    "settings",
    "sites",
]
