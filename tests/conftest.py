"""Shared test fixtures for the s3_media_migrator test suite."""

import pytest


@pytest.fixture()
def sample_metadata():
    """Return a typical unserialized ``_wp_attachment_metadata`` value."""
    return {
        "width": 1200,
        "height": 800,
        "file": "2023/05/photo.jpg",
        "filesize": 123456,
        "sizes": {
            "thumbnail": {
                "file": "photo-150x150.jpg",
                "width": 150,
                "height": 150,
                "mime_type": "image/jpeg",
            },
        },
        "image_meta": {"camera": "", "caption": ""},
    }


@pytest.fixture()
def sample_legacy_info():
    """Return a legacy ``amazonS3_info`` post meta value."""
    return {
        "provider": "aws",
        "region": "eu-west-1",
        "bucket": "legacy-bucket",
        "key": "wp-content/uploads/2019/02/old.png",
    }


@pytest.fixture()
def config_data():
    """Return a raw config dict pointing at a test bucket."""
    return {
        "database": {
            "url": "sqlite://",
            "table_prefix": "wp_",
            "multisite": False,
        },
        "storage": {
            "provider": "aws",
            "bucket": "media-bucket",
            "region": "eu-central-1",
        },
        "item_store": "items_table",
    }
