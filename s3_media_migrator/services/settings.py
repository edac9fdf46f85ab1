"""
Storage settings resolution.

The bucket and region are resolved once per run, before any media item is
touched. A missing region is looked up from S3 itself; if either value is
still empty afterwards the run cannot produce valid records and aborts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from s3_media_migrator.core.config import DomainMode, MigrationConfig, StorageConfig
from s3_media_migrator.exceptions import ConfigError
from s3_media_migrator.utils.logging import log_with_context

# get_bucket_location reports these legacy constraint names instead of regions
_LEGACY_LOCATION_CONSTRAINTS = {
    None: "us-east-1",
    "": "us-east-1",
    "EU": "eu-west-1",
}


@dataclass(frozen=True)
class StorageSettings:
    """Resolved object storage settings for one run."""

    provider: str
    region: str
    bucket: str
    enable_object_prefix: bool = True
    object_prefix: str = "wp-content/uploads/"
    domain: DomainMode = DomainMode.PATH
    cloudfront: str = ""

    def bucket_url(self) -> str:
        """Host (and path) media is served from, without protocol."""
        if self.domain == DomainMode.CLOUDFRONT and self.cloudfront:
            return self.cloudfront.strip("/")
        return f"s3-{self.region}.amazonaws.com/{self.bucket}"

    def folder_prefix(self, uploads_folder: str) -> str:
        """Object key prefix for a site whose local uploads live in ``uploads_folder``."""
        if self.enable_object_prefix:
            return self.object_prefix
        return uploads_folder

    def remote_prefix(self, protocol: str, uploads_folder: str) -> str:
        """URL prefix offloaded media is reachable under."""
        return f"{protocol}://{self.bucket_url()}/{self.folder_prefix(uploads_folder)}"


def lookup_bucket_region(bucket: str, client: Any = None) -> str:
    """
    Ask S3 which region a bucket lives in.

    Args:
        bucket: The bucket name
        client: Optional boto3 S3 client; one is created when omitted

    Returns:
        The region name, or an empty string if the lookup failed
    """
    if not bucket:
        return ""

    try:
        if client is None:
            client = boto3.client("s3")
        response = client.get_bucket_location(Bucket=bucket)
    except (ClientError, BotoCoreError) as e:
        log_with_context(
            logging.WARNING, f"Could not look up region of bucket {bucket}: {e}"
        )
        return ""

    constraint = response.get("LocationConstraint")
    region = _LEGACY_LOCATION_CONSTRAINTS.get(constraint, constraint)
    log_with_context(logging.DEBUG, f"Bucket {bucket} is in region {region}")
    return region


def resolve_storage_settings(
    storage: StorageConfig,
    region_lookup: Optional[Callable[[str], str]] = None,
) -> StorageSettings:
    """
    Resolve the bucket and region the run will record items under.

    Args:
        storage: Storage section of the configuration
        region_lookup: Called with the bucket name when no region is configured

    Returns:
        The resolved StorageSettings

    Raises:
        ConfigError: If the bucket or region cannot be determined
    """
    bucket = storage.bucket
    region = storage.region

    if bucket and not region:
        lookup = region_lookup or lookup_bucket_region
        region = lookup(bucket)

    if not bucket or not region:
        raise ConfigError(
            "Offload media setup appears to be incomplete: "
            f"bucket={bucket or '<empty>'}, region={region or '<empty>'}. "
            "Set storage.bucket (and storage.region) in your config."
        )

    log_with_context(
        logging.INFO, f"Using bucket {bucket} in region {region} ({storage.provider})"
    )
    return StorageSettings(
        provider=storage.provider,
        region=region,
        bucket=bucket,
        enable_object_prefix=storage.enable_object_prefix,
        object_prefix=storage.object_prefix,
        domain=storage.domain,
        cloudfront=storage.cloudfront,
    )


def uploads_folder(config: MigrationConfig, site_id: int, multisite: bool) -> str:
    """Local uploads folder of a site, relative to the WordPress root, with a trailing slash."""
    base = config.uploads_path.strip("/")
    if multisite and site_id not in (0, 1):
        return f"{base}/sites/{site_id}/"
    return f"{base}/"
