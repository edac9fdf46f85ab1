"""Unit tests for the pre-run checks."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from s3_media_migrator.core.preconditions import (
    active_plugins,
    check_preconditions,
    parse_version,
)
from s3_media_migrator.exceptions import PreconditionError


@pytest.mark.parametrize(
    "version,expected",
    [("2.6.1", (2, 6, 1)), ("3.0", (3, 0)), ("2.6-beta2", (2, 6, 2)), ("", ())],
)
def test_parse_version(version, expected):
    assert parse_version(version) == expected


class TestActivePlugins:
    def test_site_plugins(self, wp, make_config, active_plugin):
        assert active_plugins(wp.db, make_config(), multisite=False) == {active_plugin}

    def test_network_plugins_on_multisite(self, wp, make_config):
        wp.create_network(1)
        wp.add_site_option("active_sitewide_plugins", {"network/plugin.php": 1700000000})

        active = active_plugins(wp.db, make_config(), multisite=True)

        assert "network/plugin.php" in active

    def test_network_plugins_ignored_on_single_site(self, wp, make_config):
        wp.create_network(1)
        wp.add_site_option("active_sitewide_plugins", {"network/plugin.php": 1})
        assert "network/plugin.php" not in active_plugins(
            wp.db, make_config(), multisite=False
        )


class TestCheckPreconditions:
    def test_passes_with_active_plugin(self, wp, make_config):
        check_preconditions(wp.db, make_config(), multisite=False)

    def test_inactive_plugin(self, wp, make_config):
        config = make_config()
        config.plugin.slugs = ["some-other/plugin.php"]
        with pytest.raises(PreconditionError, match="not active"):
            check_preconditions(wp.db, config, multisite=False)

    def test_network_activated_plugin_passes(self, wp, make_config, active_plugin):
        wp.create_network(1)
        wp.add_site_option("active_sitewide_plugins", {"network/offload.php": 1})
        config = make_config()
        config.plugin.slugs = ["network/offload.php"]
        check_preconditions(wp.db, config, multisite=True)

    def test_unreachable_database(self, make_config):
        db = MagicMock()
        db.ping.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
        with pytest.raises(PreconditionError, match="connect"):
            check_preconditions(db, make_config(), multisite=False)

    def test_version_too_old(self, wp, make_config):
        wp.add_option("as3cf_version", "2.3.0")
        config = make_config()
        config.plugin.min_version = "2.6"
        with pytest.raises(PreconditionError, match="older"):
            check_preconditions(wp.db, config, multisite=False)

    def test_version_recent_enough(self, wp, make_config):
        wp.add_option("as3cf_version", "2.6.2")
        config = make_config()
        config.plugin.min_version = "2.6"
        check_preconditions(wp.db, config, multisite=False)

    def test_version_unknown(self, wp, make_config):
        config = make_config()
        config.plugin.min_version = "2.6"
        with pytest.raises(PreconditionError, match="unknown"):
            check_preconditions(wp.db, config, multisite=False)

    def test_version_not_checked_without_minimum(self, wp, make_config):
        wp.add_option("as3cf_version", "0.1")
        check_preconditions(wp.db, make_config(), multisite=False)
