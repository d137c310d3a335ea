"""
Unit tests for destination configuration.
"""

import json
import pytest

from shared.config import get_config
from shared.errors import ConfigurationError
from service_cloudwatch.app.config import CloudWatchInstanceConfig, load_config_file, parse_instances
from service_cloudwatch.app.exporters.shaper import RoutingConfig
from service_cloudwatch.app.ingestion.filters import FilterConfig


class TestCloudWatchInstanceConfig:
    """Test cases for CloudWatchInstanceConfig."""

    def test_camel_case_keys(self):
        """Test statsd-style keys."""
        config = CloudWatchInstanceConfig.model_validate({
            "region": "us-east-1",
            "namespace": "App",
            "metricName": "Forced",
            "processKeyForNamespace": True,
            "whitelist": ["a"],
            "blacklist": ["b"],
            "iamRole": "any",
        })

        assert config.routing() == RoutingConfig("App", "Forced", True)
        assert config.filters() == FilterConfig(("a",), ("b",))
        assert config.iam_role == "any"

    def test_snake_case_keys(self):
        """Test field names are accepted too."""
        config = CloudWatchInstanceConfig(process_key_for_namespace=True, access_key_id="AK")

        assert config.process_key_for_namespace is True
        assert config.access_key_id == "AK"

    def test_immutable(self):
        """Test configs cannot change after construction."""
        config = CloudWatchInstanceConfig(region="us-east-1")

        with pytest.raises(Exception):
            config.region = "eu-west-1"

    def test_default_region(self):
        """Test region fill-in leaves explicit regions alone."""
        assert CloudWatchInstanceConfig().with_default_region("eu-west-1").region == "eu-west-1"
        assert CloudWatchInstanceConfig(region="ap-south-1").with_default_region("eu-west-1").region == "ap-south-1"

    def test_describe_hides_secrets(self):
        """Test the summary contains no key material."""
        config = CloudWatchInstanceConfig(access_key_id="AK", secret_access_key="SK")
        summary = config.describe()

        assert summary["credentials"] == "static"
        assert "SK" not in json.dumps(summary)


class TestParseInstances:
    """Test cases for parse_instances."""

    def test_missing_block(self):
        """Test that no config still yields one destination."""
        instances = parse_instances(None)

        assert len(instances) == 1
        assert instances[0].region is None

    def test_instances_list(self):
        """Test the multi-destination form."""
        instances = parse_instances({"instances": [{"region": "a"}, {"region": "b"}]})

        assert [i.region for i in instances] == ["a", "b"]

    def test_empty_instances_list(self):
        """Test that an empty instances list configures no destinations."""
        assert parse_instances({"instances": []}) == []

    def test_null_filter_lists(self):
        """Test that null whitelist/blacklist count as absent."""
        instances = parse_instances({"region": "us-east-1", "whitelist": None, "blacklist": None})

        assert instances[0].whitelist == []
        assert instances[0].blacklist == []
        assert instances[0].filters() == FilterConfig.from_lists([], [])

    def test_invalid_types(self):
        """Test validation errors are reported as ConfigurationError."""
        with pytest.raises(ConfigurationError):
            parse_instances({"whitelist": "not-a-list-of-str", "processKeyForNamespace": "maybe"})

    def test_non_mapping(self):
        """Test a block that is not a mapping."""
        with pytest.raises(ConfigurationError):
            parse_instances(["region"])


class TestLoadConfigFile:
    """Test cases for load_config_file."""

    def test_yaml_with_cloudwatch_key(self, tmp_path):
        """Test a statsd-style document."""
        path = tmp_path / "config.yaml"
        path.write_text("cloudwatch:\n  region: eu-west-1\n  namespace: App\n")

        assert load_config_file(str(path)) == {"region": "eu-west-1", "namespace": "App"}

    def test_json_top_level_block(self, tmp_path):
        """Test a JSON file holding the block directly."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"instances": [{"region": "us-west-2"}]}))

        assert parse_instances(load_config_file(str(path)))[0].region == "us-west-2"

    def test_bare_filter_keys(self, tmp_path):
        """Test YAML keys left without a value."""
        path = tmp_path / "config.yaml"
        path.write_text("cloudwatch:\n  region: eu-west-1\n  whitelist:\n  blacklist:\n")

        instance = parse_instances(load_config_file(str(path)))[0]

        assert instance.whitelist == []
        assert instance.blacklist == []

    def test_missing_file(self, tmp_path):
        """Test unreadable files."""
        with pytest.raises(ConfigurationError):
            load_config_file(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        """Test unparseable files."""
        path = tmp_path / "bad.yaml"
        path.write_text("cloudwatch: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_config_file(str(path))


class TestServiceConfig:
    """Test cases for environment-driven settings."""

    def test_env_overrides(self, monkeypatch):
        """Test CLOUDWATCH_ prefixed environment variables."""
        monkeypatch.setenv("CLOUDWATCH_REGION", "eu-central-1")
        monkeypatch.setenv("CLOUDWATCH_MAX_WORKERS", "8")
        monkeypatch.setenv("CLOUDWATCH_PORT", "9100")

        config = get_config("cloudwatch")

        assert config.region == "eu-central-1"
        assert config.max_workers == 8
        assert config.port == 9100

    def test_explicit_port_wins(self, monkeypatch):
        """Test that a passed port beats the environment."""
        monkeypatch.setenv("CLOUDWATCH_PORT", "9100")

        assert get_config("cloudwatch", 8020).port == 8020
