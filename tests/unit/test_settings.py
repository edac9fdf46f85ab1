"""Unit tests for storage settings resolution."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError

from s3_media_migrator.core.config import DomainMode, StorageConfig
from s3_media_migrator.exceptions import ConfigError
from s3_media_migrator.services.settings import (
    StorageSettings,
    lookup_bucket_region,
    resolve_storage_settings,
    uploads_folder,
)


def _client(constraint):
    client = MagicMock()
    client.get_bucket_location.return_value = {"LocationConstraint": constraint}
    return client


class TestLookupBucketRegion:
    def test_regular_region(self):
        client = _client("eu-central-1")
        assert lookup_bucket_region("media", client) == "eu-central-1"
        client.get_bucket_location.assert_called_once_with(Bucket="media")

    @pytest.mark.parametrize("constraint,expected", [(None, "us-east-1"), ("EU", "eu-west-1")])
    def test_legacy_constraints(self, constraint, expected):
        assert lookup_bucket_region("media", _client(constraint)) == expected

    def test_client_error_gives_empty_region(self):
        client = MagicMock()
        client.get_bucket_location.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}},
            "GetBucketLocation",
        )
        assert lookup_bucket_region("media", client) == ""

    def test_missing_credentials_give_empty_region(self):
        client = MagicMock()
        client.get_bucket_location.side_effect = NoCredentialsError()
        assert lookup_bucket_region("media", client) == ""

    def test_empty_bucket_skips_lookup(self):
        client = _client("eu-central-1")
        assert lookup_bucket_region("", client) == ""
        client.get_bucket_location.assert_not_called()

    @patch("s3_media_migrator.services.settings.boto3")
    def test_creates_s3_client(self, mock_boto3):
        mock_boto3.client.return_value = _client("ap-southeast-2")
        assert lookup_bucket_region("media") == "ap-southeast-2"
        mock_boto3.client.assert_called_once_with("s3")


class TestResolveStorageSettings:
    def test_configured_region_skips_lookup(self):
        lookup = MagicMock()
        settings = resolve_storage_settings(
            StorageConfig(bucket="media", region="eu-west-3"), lookup
        )
        assert settings.region == "eu-west-3"
        lookup.assert_not_called()

    def test_missing_region_is_looked_up(self):
        settings = resolve_storage_settings(
            StorageConfig(bucket="media"), lambda bucket: "us-east-2"
        )
        assert settings.bucket == "media"
        assert settings.region == "us-east-2"

    def test_empty_bucket_is_fatal(self):
        with pytest.raises(ConfigError, match="incomplete"):
            resolve_storage_settings(StorageConfig(bucket="", region="eu-west-1"))

    def test_failed_lookup_is_fatal(self):
        with pytest.raises(ConfigError):
            resolve_storage_settings(StorageConfig(bucket="media"), lambda bucket: "")

    def test_copies_url_settings(self):
        settings = resolve_storage_settings(
            StorageConfig(
                bucket="media",
                region="eu-west-1",
                enable_object_prefix=False,
                domain=DomainMode.CLOUDFRONT,
                cloudfront="cdn.example.com",
            )
        )
        assert settings.enable_object_prefix is False
        assert settings.bucket_url() == "cdn.example.com"


class TestStorageSettings:
    def test_path_style_bucket_url(self, storage_settings):
        assert storage_settings.bucket_url() == "s3-eu-central-1.amazonaws.com/media-bucket"

    def test_cloudfront_without_host_uses_bucket(self):
        settings = StorageSettings(
            "aws", "eu-west-1", "media", domain=DomainMode.CLOUDFRONT, cloudfront=""
        )
        assert settings.bucket_url() == "s3-eu-west-1.amazonaws.com/media"

    def test_folder_prefix(self, storage_settings):
        assert storage_settings.folder_prefix("wp-content/uploads/") == "wp-content/uploads/"
        custom = StorageSettings("aws", "r", "b", object_prefix="media/")
        assert custom.folder_prefix("wp-content/uploads/") == "media/"
        disabled = StorageSettings("aws", "r", "b", enable_object_prefix=False)
        assert (
            disabled.folder_prefix("wp-content/uploads/sites/2/")
            == "wp-content/uploads/sites/2/"
        )

    def test_remote_prefix(self, storage_settings):
        assert (
            storage_settings.remote_prefix("http", "wp-content/uploads/")
            == "http://s3-eu-central-1.amazonaws.com/media-bucket/wp-content/uploads/"
        )


class TestUploadsFolder:
    def test_single_site(self, make_config):
        assert uploads_folder(make_config(), 1, multisite=False) == "wp-content/uploads/"

    def test_main_site_of_network(self, make_config):
        assert uploads_folder(make_config(), 1, multisite=True) == "wp-content/uploads/"

    def test_sub_site_of_network(self, make_config):
        assert (
            uploads_folder(make_config(), 4, multisite=True)
            == "wp-content/uploads/sites/4/"
        )

    def test_custom_uploads_path(self, make_config):
        config = make_config(uploads_path="/media/")
        assert uploads_folder(config, 1, multisite=False) == "media/"
